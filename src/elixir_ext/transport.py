"""Archive download and working-area file operations."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import stat
import tarfile
import tempfile
import urllib.error
import urllib.request
import zipfile
from enum import StrEnum
from pathlib import Path
from typing import Callable, Mapping, Protocol

from elixir_ext.exceptions import FilesystemError, NotFoundError, TransportError

logger = logging.getLogger(__name__)

_DOWNLOAD_CHUNK_BYTES = 1 << 16
_EXECUTABLE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class ArchiveKind(StrEnum):
    ZIP = "zip"
    GZIP = "gzip"
    GZIP_TAR = "gzip_tar"
    UNCOMPRESSED = "uncompressed"

    @property
    def extension(self) -> str:
        return _ARCHIVE_EXTENSIONS[self]


_ARCHIVE_EXTENSIONS = {
    ArchiveKind.ZIP: "zip",
    ArchiveKind.GZIP: "gz",
    ArchiveKind.GZIP_TAR: "tar.gz",
    ArchiveKind.UNCOMPRESSED: "",
}


class FileTransport(Protocol):
    def download(self, url: str, destination: Path, archive_kind: ArchiveKind) -> None: ...

    def mark_executable(self, path: Path) -> None: ...

    def list_entries(self, directory: Path) -> list[Path]: ...

    def remove_entry(self, path: Path) -> None: ...


class ArchiveTransport:
    """Downloads over HTTP(S) and unpacks into the working area.

    ``destination`` is a directory for ``zip``/``gzip_tar`` archives and a file
    for ``gzip``/``uncompressed`` payloads. The payload is staged in a sibling
    temporary directory and moved into place only once fully unpacked.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 60.0,
        headers: Mapping[str, str] | None = None,
        urlopen_fn: Callable[..., object] = urllib.request.urlopen,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": "elixir-ext", **dict(headers or {})}
        self._urlopen_fn = urlopen_fn

    def download(self, url: str, destination: Path, archive_kind: ArchiveKind) -> None:
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(prefix=f".{destination.name}-", dir=destination.parent)
        )
        try:
            download_path = staging / "download.part"
            self._fetch(url, download_path)
            staged = staging / destination.name
            _unpack(download_path, staged, archive_kind)
            if destination.exists():
                _remove_path(destination)
            os.replace(staged, destination)
        except (TransportError, NotFoundError):
            raise
        except urllib.error.HTTPError as exc:
            raise TransportError(
                f"failed to download file: HTTP {exc.code} for {url}",
                kind="download_http",
            ) from exc
        except (urllib.error.URLError, TimeoutError) as exc:
            raise TransportError(f"failed to download file: {exc}", kind="network") from exc
        except (zipfile.BadZipFile, tarfile.TarError, gzip.BadGzipFile, EOFError) as exc:
            raise TransportError(f"failed to extract file: {exc}", kind="extract") from exc
        except OSError as exc:
            raise TransportError(f"failed to download file: {exc}", kind="io") from exc
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        logger.debug("downloaded %s into %s", url, destination)

    def _fetch(self, url: str, target: Path) -> None:
        request = urllib.request.Request(url, headers=self._headers)
        with self._urlopen_fn(request, timeout=self._timeout_seconds) as response:
            with target.open("wb") as handle:
                while True:
                    chunk = response.read(_DOWNLOAD_CHUNK_BYTES)
                    if not chunk:
                        break
                    handle.write(chunk)

    def mark_executable(self, path: Path) -> None:
        try:
            mode = os.stat(path).st_mode
        except FileNotFoundError as exc:
            raise NotFoundError(f"cannot mark missing file executable: {path}") from exc
        os.chmod(path, mode | _EXECUTABLE_BITS)

    def list_entries(self, directory: Path) -> list[Path]:
        try:
            return sorted(Path(directory).iterdir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise FilesystemError(f"failed to list working directory {directory}: {exc}") from exc

    def remove_entry(self, path: Path) -> None:
        try:
            _remove_path(Path(path))
        except OSError as exc:
            raise FilesystemError(f"failed to remove {path}: {exc}") from exc


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _unpack(source: Path, target: Path, archive_kind: ArchiveKind) -> None:
    if archive_kind is ArchiveKind.ZIP:
        target.mkdir()
        with zipfile.ZipFile(source) as archive:
            root = target.resolve()
            for member in archive.infolist():
                member_path = (target / member.filename).resolve()
                if member_path != root and root not in member_path.parents:
                    raise TransportError(
                        f"archive member escapes destination: {member.filename}",
                        kind="unsafe_archive",
                    )
            archive.extractall(target)
    elif archive_kind is ArchiveKind.GZIP_TAR:
        target.mkdir()
        with tarfile.open(source, mode="r:gz") as archive:
            try:
                archive.extractall(target, filter="data")
            except tarfile.FilterError as exc:
                raise TransportError(
                    f"archive member escapes destination: {exc}",
                    kind="unsafe_archive",
                ) from exc
    elif archive_kind is ArchiveKind.GZIP:
        with gzip.open(source, "rb") as compressed, target.open("wb") as handle:
            shutil.copyfileobj(compressed, handle)
    else:
        shutil.move(source, target)
