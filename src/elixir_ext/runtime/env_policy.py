from __future__ import annotations

import os
import re
from decimal import Decimal, InvalidOperation
from typing import Mapping, Sequence

from elixir_ext.exceptions import ConfigurationError

_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_FALSEY_VALUES = {"0", "false", "no", "off"}

WORK_DIR_ENV_KEY = "ELIXIR_EXT_WORK_DIR"
PRE_RELEASE_ENV_KEY = "ELIXIR_EXT_PRE_RELEASE"
TIMEOUT_ENV_KEY = "ELIXIR_EXT_TIMEOUT"
LOG_LEVEL_ENV_KEY = "ELIXIR_EXT_LOG_LEVEL"
GITHUB_TOKEN_ENV_KEYS: tuple[str, ...] = ("GITHUB_TOKEN", "GH_TOKEN")

_DURATION_TOKEN_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ns|us|ms|s|m|h)")
_DURATION_UNIT_SECONDS: dict[str, Decimal] = {
    "ns": Decimal("0.000000001"),
    "us": Decimal("0.000001"),
    "ms": Decimal("0.001"),
    "s": Decimal("1"),
    "m": Decimal("60"),
    "h": Decimal("3600"),
}


def env_text(
    name: str,
    *,
    default: str = "",
    environ: Mapping[str, str] | None = None,
) -> str:
    source = os.environ if environ is None else environ
    return str(source.get(name, default) or "").strip()


def first_env_text(
    keys: Sequence[str],
    *,
    environ: Mapping[str, str] | None = None,
) -> str:
    for key in keys:
        text = env_text(key, environ=environ)
        if text:
            return text
    return ""


def env_flag(
    name: str,
    *,
    environ: Mapping[str, str] | None = None,
) -> bool | None:
    """Tri-state flag: ``None`` when unset or unrecognised."""
    text = env_text(name, environ=environ).lower()
    if text in _TRUTHY_VALUES:
        return True
    if text in _FALSEY_VALUES:
        return False
    return None


def parse_duration_seconds(duration: str, *, field_name: str = "timeout") -> float:
    """Parse ``"30s"``, ``"1m30s"``, ``"250ms"`` or a bare number of seconds."""
    text = str(duration).strip().lower()
    if not text:
        raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
    try:
        bare = Decimal(text)
    except (InvalidOperation, ValueError):
        bare = None
    if bare is not None:
        if not bare.is_finite() or bare <= 0:
            raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
        return float(bare)
    idx = 0
    total = Decimal("0")
    while idx < len(text):
        match = _DURATION_TOKEN_RE.match(text, idx)
        if match is None:
            raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
        value = Decimal(match.group("value"))
        if value <= 0:
            raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
        total += value * _DURATION_UNIT_SECONDS[match.group("unit")]
        idx = match.end()
    return float(total)
