"""Host platform detection."""

from __future__ import annotations

import platform as _platform
import sys
from enum import StrEnum

from elixir_ext.exceptions import NotFoundError


class Os(StrEnum):
    MAC = "mac"
    LINUX = "linux"
    WINDOWS = "windows"


class Architecture(StrEnum):
    AARCH64 = "aarch64"
    X86 = "x86"
    X8664 = "x86_64"


class UnsupportedPlatformError(NotFoundError):
    default_kind = "unsupported_platform"


_ARCH_ALIASES = {
    "aarch64": Architecture.AARCH64,
    "arm64": Architecture.AARCH64,
    "x86_64": Architecture.X8664,
    "amd64": Architecture.X8664,
    "i386": Architecture.X86,
    "i686": Architecture.X86,
    "x86": Architecture.X86,
}


def detect_os(sys_platform: str | None = None) -> Os:
    value = sys_platform if sys_platform is not None else sys.platform
    if value == "darwin":
        return Os.MAC
    if value.startswith("linux"):
        return Os.LINUX
    if value in {"win32", "cygwin"}:
        return Os.WINDOWS
    raise UnsupportedPlatformError(f"unsupported operating system: {value}")


def detect_architecture(machine: str | None = None) -> Architecture:
    value = (machine if machine is not None else _platform.machine()).strip().lower()
    arch = _ARCH_ALIASES.get(value)
    if arch is None:
        raise UnsupportedPlatformError(f"unsupported architecture: {value or '<unknown>'}")
    return arch


def current_platform() -> tuple[Os, Architecture]:
    return detect_os(), detect_architecture()


def launcher_extension(os_kind: Os) -> str:
    if os_kind is Os.WINDOWS:
        return "bat"
    return "sh"
