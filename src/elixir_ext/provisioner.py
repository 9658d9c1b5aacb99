"""Language-server binary provisioning.

Resolution order for a server identity:

1. a binary of the same name on the worktree's search path;
2. the last path this provisioner resolved, if the file still exists;
3. the latest GitHub release, downloaded into a version directory under the
   working area when not already present. Every other entry in the working
   area is pruned after a fresh install.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable

from elixir_ext.exceptions import ConfigurationError, FilesystemError, NotFoundError
from elixir_ext.json_types import JSONObject
from elixir_ext.platform import Architecture, Os, current_platform
from elixir_ext.release import ReleaseSource
from elixir_ext.schema import LspSettingsDTO
from elixir_ext.server_identity import ServerIdentity
from elixir_ext.status import InstallationStatus, LoggingStatusSink, StatusSink
from elixir_ext.transport import FileTransport
from elixir_ext.worktree import Worktree

logger = logging.getLogger(__name__)


class BinaryProvisioner:
    def __init__(
        self,
        identity: ServerIdentity,
        *,
        work_dir: Path,
        release_source: ReleaseSource,
        transport: FileTransport,
        status_sink: StatusSink | None = None,
        pre_release: bool = False,
        platform_fn: Callable[[], tuple[Os, Architecture]] = current_platform,
    ) -> None:
        self.identity = identity
        self.work_dir = Path(work_dir)
        self._release_source = release_source
        self._transport = transport
        self._status_sink = status_sink or LoggingStatusSink()
        self._pre_release = pre_release
        self._platform_fn = platform_fn
        self._cached_binary_path: str | None = None
        self._lock = threading.Lock()
        self._inflight: Future[str] | None = None

    @property
    def cached_binary_path(self) -> str | None:
        return self._cached_binary_path

    def resolve(self, worktree: Worktree) -> str:
        server_id = self.identity.server_id
        system_path = worktree.which(server_id)
        if system_path:
            logger.debug("using %s from the search path: %s", server_id, system_path)
            return system_path

        with self._lock:
            cached = self._cached_binary_path
            if cached is not None and os.path.isfile(cached):
                return cached
            inflight = self._inflight
            owner = inflight is None
            if owner:
                inflight = self._inflight = Future()

        if not owner:
            logger.debug("waiting on in-flight resolution of %s", server_id)
            return inflight.result()

        try:
            path = self._install_latest()
        except BaseException as exc:
            with self._lock:
                self._inflight = None
            inflight.set_exception(exc)
            raise
        with self._lock:
            self._cached_binary_path = path
            self._inflight = None
        inflight.set_result(path)
        return path

    def _install_latest(self) -> str:
        identity = self.identity
        self._status_sink.report(identity.server_id, InstallationStatus.CHECKING_FOR_UPDATE)
        release = self._release_source.latest_release(
            identity.repo,
            require_assets=True,
            pre_release=self._pre_release,
        )

        asset_name = identity.asset_name(release.version)
        asset = release.find_asset(asset_name)
        if asset is None:
            raise NotFoundError(f"no asset found matching {asset_name!r}", kind="asset_missing")

        os_kind, _arch = self._platform_fn()
        version_dir = self.work_dir / identity.version_dir_name(release.version)
        binary_path = identity.launcher_path(version_dir, os_kind)

        if not os.path.isfile(binary_path):
            self._status_sink.report(identity.server_id, InstallationStatus.DOWNLOADING)
            logger.info("installing %s %s into %s", identity.server_id, release.version, version_dir)
            self._transport.download(asset.download_url, version_dir, identity.archive_kind)
            self._transport.mark_executable(binary_path)
            for auxiliary in identity.auxiliary_paths(version_dir, os_kind):
                if os.path.isfile(auxiliary):
                    self._transport.mark_executable(auxiliary)
            self.prune(keep=version_dir.name)

        return str(binary_path)

    def prune(self, *, keep: str) -> list[Path]:
        """Remove every working-area entry not named ``keep``.

        Failures are logged and returned, never raised.
        """
        try:
            entries = self._transport.list_entries(self.work_dir)
        except FilesystemError as exc:
            logger.warning("skipping prune of %s: %s", self.work_dir, exc)
            return []
        failed: list[Path] = []
        for entry in entries:
            if entry.name == keep:
                continue
            try:
                self._transport.remove_entry(entry)
            except FilesystemError as exc:
                logger.warning("unable to prune %s: %s", entry, exc)
                failed.append(entry)
        return failed

    def workspace_configuration(self, worktree: Worktree) -> JSONObject:
        lsp_settings = self.lsp_settings(worktree)
        settings: JSONObject = {}
        if lsp_settings is not None and lsp_settings.settings is not None:
            settings = dict(lsp_settings.settings)
        return {self.identity.settings_key: settings}

    def initialization_options(self, worktree: Worktree) -> JSONObject | None:
        lsp_settings = self.lsp_settings(worktree)
        if lsp_settings is None or lsp_settings.initialization_options is None:
            return None
        return dict(lsp_settings.initialization_options)

    def lsp_settings(self, worktree: Worktree) -> LspSettingsDTO | None:
        # Missing or unreadable settings are treated as no settings.
        try:
            return worktree.settings_for(self.identity.server_id)
        except ConfigurationError as exc:
            logger.warning("ignoring %s settings: %s", self.identity.server_id, exc)
            return None


class ProvisionerRegistry:
    """One provisioner per server identity, created on first use."""

    def __init__(self, factory: Callable[[ServerIdentity], BinaryProvisioner]) -> None:
        self._factory = factory
        self._provisioners: dict[str, BinaryProvisioner] = {}
        self._lock = threading.Lock()

    def provisioner_for(self, identity: ServerIdentity) -> BinaryProvisioner:
        with self._lock:
            provisioner = self._provisioners.get(identity.server_id)
            if provisioner is None:
                provisioner = self._factory(identity)
                self._provisioners[identity.server_id] = provisioner
            return provisioner

    def resolve(self, identity: ServerIdentity, worktree: Worktree) -> str:
        return self.provisioner_for(identity).resolve(worktree)
