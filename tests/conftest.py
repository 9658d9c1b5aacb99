from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.fakes import (
    FakeReleaseSource,
    FakeTransport,
    FakeWorktree,
    RecordingStatusSink,
    make_release,
)


@pytest.fixture
def worktree() -> FakeWorktree:
    return FakeWorktree()


@pytest.fixture
def status_sink() -> RecordingStatusSink:
    return RecordingStatusSink()


@pytest.fixture
def release_source() -> FakeReleaseSource:
    return FakeReleaseSource(make_release("v0.22.0"))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
