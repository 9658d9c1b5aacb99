from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol

logger = logging.getLogger(__name__)


class InstallationStatus(StrEnum):
    CHECKING_FOR_UPDATE = "checking_for_update"
    DOWNLOADING = "downloading"


class StatusSink(Protocol):
    def report(self, server_id: str, status: InstallationStatus) -> None: ...


class LoggingStatusSink:
    """Default sink: installation progress goes to the log."""

    def report(self, server_id: str, status: InstallationStatus) -> None:
        logger.info("%s: %s", server_id, status.value.replace("_", " "))
