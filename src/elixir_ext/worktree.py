"""Worktree collaborator: PATH lookup, per-server settings and shell environment."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Mapping, Protocol

from pydantic import ValidationError

from elixir_ext.config import DEFAULT_CONFIG_NAME, lsp_section
from elixir_ext.exceptions import ConfigurationError
from elixir_ext.schema import LspSettingsDTO


class Worktree(Protocol):
    def which(self, name: str) -> str | None: ...

    def settings_for(self, server_id: str) -> LspSettingsDTO | None: ...

    def shell_env(self) -> dict[str, str]: ...


class LocalWorktree:
    """A worktree rooted at a directory on the local filesystem.

    Settings come from ``[lsp.<server_id>]`` in the root's ``elixir-ext.toml``.
    """

    def __init__(
        self,
        root: Path,
        *,
        env: Mapping[str, str] | None = None,
        config_path: Path | None = None,
    ) -> None:
        self.root = Path(root)
        self._env = dict(os.environ if env is None else env)
        self._config_path = config_path or self.root / DEFAULT_CONFIG_NAME

    def which(self, name: str) -> str | None:
        return shutil.which(name, path=self._env.get("PATH", os.defpath))

    def settings_for(self, server_id: str) -> LspSettingsDTO | None:
        section = lsp_section(server_id, config_path=self._config_path)
        if section is None:
            return None
        try:
            return LspSettingsDTO.model_validate(section)
        except ValidationError as exc:
            raise ConfigurationError(
                f"invalid [lsp.{server_id}] settings in {self._config_path}: {exc}"
            ) from exc

    def shell_env(self) -> dict[str, str]:
        return dict(self._env)
