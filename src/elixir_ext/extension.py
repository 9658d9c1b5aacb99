"""Entry points an editor host calls for the Elixir language server."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from lsprotocol.types import CompletionItem

from elixir_ext.config import ProvisionConfig
from elixir_ext.json_types import JSONObject
from elixir_ext.labels import CodeLabel, LabelFormatter, SymbolLike
from elixir_ext.provisioner import BinaryProvisioner, ProvisionerRegistry
from elixir_ext.release import GithubReleaseSource, ReleaseSource
from elixir_ext.server_identity import ELIXIR_LS, ServerIdentity
from elixir_ext.status import StatusSink
from elixir_ext.transport import ArchiveTransport, FileTransport
from elixir_ext.worktree import Worktree


@dataclass(frozen=True)
class LanguageServerCommand:
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


def default_registry(
    config: ProvisionConfig,
    *,
    release_source: ReleaseSource | None = None,
    transport: FileTransport | None = None,
    status_sink: StatusSink | None = None,
) -> ProvisionerRegistry:
    source = release_source or GithubReleaseSource(
        token=config.github_token,
        timeout_seconds=config.timeout_seconds,
    )
    file_transport = transport or ArchiveTransport(timeout_seconds=max(60.0, config.timeout_seconds))

    def _factory(identity: ServerIdentity) -> BinaryProvisioner:
        return BinaryProvisioner(
            identity,
            work_dir=Path(config.work_dir) / identity.server_id,
            release_source=source,
            transport=file_transport,
            status_sink=status_sink,
            pre_release=config.pre_release,
        )

    return ProvisionerRegistry(_factory)


class ElixirExtension:
    def __init__(
        self,
        registry: ProvisionerRegistry,
        *,
        identity: ServerIdentity = ELIXIR_LS,
        labels: LabelFormatter | None = None,
    ) -> None:
        self.identity = identity
        self._registry = registry
        self._labels = labels or LabelFormatter()

    @property
    def provisioner(self) -> BinaryProvisioner:
        return self._registry.provisioner_for(self.identity)

    def language_server_binary_path(self, worktree: Worktree) -> str:
        return self._registry.resolve(self.identity, worktree)

    def language_server_command(self, worktree: Worktree) -> LanguageServerCommand:
        command = self.language_server_binary_path(worktree)
        env = worktree.shell_env()
        args: list[str] = []
        lsp_settings = self.provisioner.lsp_settings(worktree)
        if lsp_settings is not None and lsp_settings.binary is not None:
            args = list(lsp_settings.binary.arguments)
            env.update(lsp_settings.binary.env)
        return LanguageServerCommand(command=command, args=args, env=env)

    def language_server_workspace_configuration(self, worktree: Worktree) -> JSONObject:
        return self.provisioner.workspace_configuration(worktree)

    def language_server_initialization_options(self, worktree: Worktree) -> JSONObject | None:
        return self.provisioner.initialization_options(worktree)

    def label_for_completion(self, completion: CompletionItem) -> CodeLabel | None:
        return self._labels.label_for_completion(completion)

    def label_for_symbol(self, symbol: SymbolLike) -> CodeLabel | None:
        return self._labels.label_for_symbol(symbol)
