from __future__ import annotations

from pathlib import Path

import pytest

from elixir_ext.exceptions import ConfigurationError, NotFoundError, TransportError
from elixir_ext.platform import Architecture, Os
from elixir_ext.provisioner import BinaryProvisioner, ProvisionerRegistry
from elixir_ext.schema import LspSettingsDTO
from elixir_ext.server_identity import ELIXIR_LS
from elixir_ext.status import InstallationStatus
from tests.fakes import (
    FakeReleaseSource,
    FakeTransport,
    FakeWorktree,
    RecordingStatusSink,
    is_executable,
    make_release,
)


def _provisioner(
    work_dir: Path,
    release_source: FakeReleaseSource,
    transport: FakeTransport,
    status_sink: RecordingStatusSink | None = None,
    *,
    os_kind: Os = Os.LINUX,
    pre_release: bool = False,
) -> BinaryProvisioner:
    return BinaryProvisioner(
        ELIXIR_LS,
        work_dir=work_dir,
        release_source=release_source,
        transport=transport,
        status_sink=status_sink or RecordingStatusSink(),
        pre_release=pre_release,
        platform_fn=lambda: (os_kind, Architecture.X8664),
    )


def test_system_binary_wins(tmp_path, worktree, release_source, transport, status_sink) -> None:
    worktree.system_paths["elixir-ls"] = "/usr/local/bin/elixir-ls"
    provisioner = _provisioner(tmp_path, release_source, transport, status_sink)

    assert provisioner.resolve(worktree) == "/usr/local/bin/elixir-ls"
    assert worktree.which_calls == ["elixir-ls"]
    assert release_source.calls == []
    assert transport.downloads == []
    assert status_sink.reports == []
    assert provisioner.cached_binary_path is None


def test_fresh_install_downloads_and_marks_launchers(
    tmp_path, worktree, release_source, transport, status_sink
) -> None:
    provisioner = _provisioner(tmp_path, release_source, transport, status_sink)

    path = provisioner.resolve(worktree)

    version_dir = tmp_path / "elixir-ls-v0.22.0"
    assert path == str(version_dir / "language_server.sh")
    assert release_source.calls == [("elixir-lsp/elixir-ls", True, False)]
    assert transport.downloads == [
        ("https://example.invalid/elixir-ls-v0.22.0.zip", version_dir, ELIXIR_LS.archive_kind)
    ]
    assert transport.executables == [
        version_dir / "language_server.sh",
        version_dir / "launch.sh",
        version_dir / "debug_adapter.sh",
    ]
    assert all(is_executable(item) for item in transport.executables)
    assert status_sink.reports == [
        ("elixir-ls", InstallationStatus.CHECKING_FOR_UPDATE),
        ("elixir-ls", InstallationStatus.DOWNLOADING),
    ]
    assert provisioner.cached_binary_path == path


def test_second_resolve_uses_cached_path(tmp_path, worktree, release_source, transport) -> None:
    provisioner = _provisioner(tmp_path, release_source, transport)

    first = provisioner.resolve(worktree)
    second = provisioner.resolve(worktree)

    assert first == second
    assert len(release_source.calls) == 1
    assert len(transport.downloads) == 1


def test_stale_cached_path_is_revalidated(tmp_path, worktree, release_source, transport) -> None:
    provisioner = _provisioner(tmp_path, release_source, transport)
    path = Path(provisioner.resolve(worktree))
    path.unlink()

    assert provisioner.resolve(worktree) == str(path)
    assert len(release_source.calls) == 2
    assert len(transport.downloads) == 2
    assert path.is_file()


def test_existing_install_skips_download(tmp_path, worktree, release_source, transport, status_sink) -> None:
    version_dir = tmp_path / "elixir-ls-v0.22.0"
    version_dir.mkdir()
    (version_dir / "language_server.sh").write_text("#!/bin/sh\n", encoding="utf-8")
    (tmp_path / "unrelated").mkdir()
    provisioner = _provisioner(tmp_path, release_source, transport, status_sink)

    assert provisioner.resolve(worktree) == str(version_dir / "language_server.sh")
    assert transport.downloads == []
    assert status_sink.reports == [("elixir-ls", InstallationStatus.CHECKING_FOR_UPDATE)]
    # pruning only follows a fresh install
    assert (tmp_path / "unrelated").is_dir()


def test_install_prunes_other_versions(tmp_path, worktree, release_source, transport) -> None:
    old_dir = tmp_path / "elixir-ls-v0.21.0"
    old_dir.mkdir()
    (old_dir / "language_server.sh").write_text("old", encoding="utf-8")
    (tmp_path / "stray.zip").write_bytes(b"partial")
    provisioner = _provisioner(tmp_path, release_source, transport)

    provisioner.resolve(worktree)

    assert [entry.name for entry in tmp_path.iterdir()] == ["elixir-ls-v0.22.0"]


def test_prune_failures_do_not_fail_resolution(tmp_path, worktree, release_source) -> None:
    (tmp_path / "elixir-ls-v0.21.0").mkdir()
    (tmp_path / "elixir-ls-v0.20.0").mkdir()
    transport = FakeTransport(undeletable={"elixir-ls-v0.21.0"})
    provisioner = _provisioner(tmp_path, release_source, transport)

    path = provisioner.resolve(worktree)

    assert Path(path).is_file()
    assert sorted(entry.name for entry in tmp_path.iterdir()) == [
        "elixir-ls-v0.21.0",
        "elixir-ls-v0.22.0",
    ]


def test_prune_reports_failed_entries(tmp_path, release_source) -> None:
    (tmp_path / "keep").mkdir()
    (tmp_path / "locked").mkdir()
    transport = FakeTransport(undeletable={"locked"})
    provisioner = _provisioner(tmp_path, release_source, transport)

    assert provisioner.prune(keep="keep") == [tmp_path / "locked"]


def test_missing_asset_is_not_found(tmp_path, worktree, transport) -> None:
    source = FakeReleaseSource(make_release("v0.22.0", asset_names=["elixir-ls-v0.22.0.tar.gz"]))
    provisioner = _provisioner(tmp_path, source, transport)

    with pytest.raises(NotFoundError, match="elixir-ls-v0.22.0.zip"):
        provisioner.resolve(worktree)
    assert transport.downloads == []
    assert provisioner.cached_binary_path is None


def test_release_lookup_failure_leaves_cache_unset(tmp_path, worktree, transport) -> None:
    source = FakeReleaseSource(error=TransportError("network down", kind="network"))
    provisioner = _provisioner(tmp_path, source, transport)

    with pytest.raises(TransportError, match="network down"):
        provisioner.resolve(worktree)
    assert provisioner.cached_binary_path is None
    assert transport.downloads == []


def test_no_release_is_not_found(tmp_path, worktree, transport) -> None:
    provisioner = _provisioner(tmp_path, FakeReleaseSource(None), transport)

    with pytest.raises(NotFoundError):
        provisioner.resolve(worktree)
    assert provisioner.cached_binary_path is None


def test_download_failure_propagates_and_can_be_retried(tmp_path, worktree, release_source) -> None:
    transport = FakeTransport(download_error=TransportError("failed to download file: boom"))
    provisioner = _provisioner(tmp_path, release_source, transport)

    with pytest.raises(TransportError, match="failed to download file"):
        provisioner.resolve(worktree)
    assert provisioner.cached_binary_path is None

    transport.download_error = None
    assert Path(provisioner.resolve(worktree)).is_file()
    assert len(release_source.calls) == 2


def test_missing_launcher_after_install_is_not_found(tmp_path, worktree, release_source) -> None:
    transport = FakeTransport(files=("launch.sh",))
    provisioner = _provisioner(tmp_path, release_source, transport)

    with pytest.raises(NotFoundError):
        provisioner.resolve(worktree)
    assert provisioner.cached_binary_path is None


def test_auxiliary_launchers_are_optional(tmp_path, worktree, release_source) -> None:
    transport = FakeTransport(files=("language_server.sh",))
    provisioner = _provisioner(tmp_path, release_source, transport)

    path = provisioner.resolve(worktree)

    assert transport.executables == [Path(path)]


def test_windows_uses_batch_launchers(tmp_path, worktree, release_source) -> None:
    transport = FakeTransport(files=("language_server.bat", "launch.bat", "debug_adapter.bat"))
    provisioner = _provisioner(tmp_path, release_source, transport, os_kind=Os.WINDOWS)

    path = provisioner.resolve(worktree)

    assert path == str(tmp_path / "elixir-ls-v0.22.0" / "language_server.bat")
    assert [item.suffix for item in transport.executables] == [".bat", ".bat", ".bat"]


def test_pre_release_flag_reaches_release_source(tmp_path, worktree, release_source, transport) -> None:
    provisioner = _provisioner(tmp_path, release_source, transport, pre_release=True)

    provisioner.resolve(worktree)

    assert release_source.calls == [("elixir-lsp/elixir-ls", True, True)]


def test_workspace_configuration_wraps_settings(tmp_path, release_source, transport) -> None:
    worktree = FakeWorktree(settings=LspSettingsDTO(settings={"dialyzerEnabled": False}))
    provisioner = _provisioner(tmp_path, release_source, transport)

    assert provisioner.workspace_configuration(worktree) == {
        "elixirLS": {"dialyzerEnabled": False}
    }


@pytest.mark.parametrize(
    "worktree",
    [
        FakeWorktree(),
        FakeWorktree(settings=LspSettingsDTO(initialization_options={"a": 1})),
        FakeWorktree(settings_error=ConfigurationError("bad settings")),
    ],
)
def test_workspace_configuration_defaults_to_empty(tmp_path, release_source, transport, worktree) -> None:
    provisioner = _provisioner(tmp_path, release_source, transport)

    assert provisioner.workspace_configuration(worktree) == {"elixirLS": {}}


def test_initialization_options(tmp_path, release_source, transport) -> None:
    provisioner = _provisioner(tmp_path, release_source, transport)

    assert provisioner.initialization_options(FakeWorktree()) is None
    assert provisioner.initialization_options(
        FakeWorktree(settings=LspSettingsDTO(initialization_options={"mixEnv": "test"}))
    ) == {"mixEnv": "test"}
    assert provisioner.initialization_options(
        FakeWorktree(settings_error=ConfigurationError("bad settings"))
    ) is None


def test_registry_returns_one_provisioner_per_identity(tmp_path, worktree, release_source, transport) -> None:
    created: list[str] = []

    def _factory(identity):
        created.append(identity.server_id)
        return _provisioner(tmp_path, release_source, transport)

    registry = ProvisionerRegistry(_factory)

    assert registry.provisioner_for(ELIXIR_LS) is registry.provisioner_for(ELIXIR_LS)
    first = registry.resolve(ELIXIR_LS, worktree)
    assert registry.resolve(ELIXIR_LS, worktree) == first
    assert created == ["elixir-ls"]
    assert len(release_source.calls) == 1
