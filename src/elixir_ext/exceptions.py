"""Error hierarchy shared by provisioning, configuration and transport code."""

from __future__ import annotations


class ElixirExtError(RuntimeError):
    """Base error. ``kind`` is a short machine-readable tag."""

    default_kind = "error"

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind or self.default_kind


class NotFoundError(ElixirExtError):
    """No qualifying release, no matching asset, or an expected file is missing."""

    default_kind = "not_found"


class TransportError(ElixirExtError):
    """Network, download or extraction failure."""

    default_kind = "transport"


class FilesystemError(ElixirExtError):
    """Listing or removing entries in the working area failed."""

    default_kind = "filesystem"


class ConfigurationError(ElixirExtError):
    """Settings could not be read or have the wrong shape."""

    default_kind = "configuration"
