"""Identity of a provisioned language server and the names derived from it."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from elixir_ext.platform import Os, launcher_extension
from elixir_ext.transport import ArchiveKind


@dataclass(frozen=True)
class ServerIdentity:
    server_id: str
    repo: str
    settings_key: str
    launcher: str = "language_server"
    auxiliary_launchers: tuple[str, ...] = ()
    archive_kind: ArchiveKind = ArchiveKind.ZIP

    def asset_name(self, version: str) -> str:
        name = f"{self.server_id}-{version}"
        extension = self.archive_kind.extension
        return f"{name}.{extension}" if extension else name

    def version_dir_name(self, version: str) -> str:
        return f"{self.server_id}-{version}"

    def launcher_path(self, version_dir: Path, os_kind: Os) -> Path:
        return version_dir / f"{self.launcher}.{launcher_extension(os_kind)}"

    def auxiliary_paths(self, version_dir: Path, os_kind: Os) -> list[Path]:
        extension = launcher_extension(os_kind)
        return [version_dir / f"{name}.{extension}" for name in self.auxiliary_launchers]


ELIXIR_LS = ServerIdentity(
    server_id="elixir-ls",
    repo="elixir-lsp/elixir-ls",
    settings_key="elixirLS",
    auxiliary_launchers=("launch", "debug_adapter"),
)
