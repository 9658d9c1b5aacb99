from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import logging
import tomllib

from elixir_ext.runtime.env_policy import (
    GITHUB_TOKEN_ENV_KEYS,
    PRE_RELEASE_ENV_KEY,
    TIMEOUT_ENV_KEY,
    WORK_DIR_ENV_KEY,
    env_flag,
    env_text,
    first_env_text,
    parse_duration_seconds,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "elixir-ext.toml"
DEFAULT_WORK_DIR = Path("~/.cache/elixir-ext")
DEFAULT_TIMEOUT_SECONDS = 30.0

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        logger.warning("unable to read %s: %s", path, exc)
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("ignoring malformed %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def provision_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("provision", {})
    return section if isinstance(section, dict) else {}


def lsp_section(
    server_id: str,
    root: Path | None = None,
    config_path: Path | None = None,
) -> TomlTable | None:
    data = load_config(root=root, config_path=config_path)
    lsp = data.get("lsp", {})
    if not isinstance(lsp, dict):
        return None
    section = lsp.get(server_id)
    return section if isinstance(section, dict) else None


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def merge_payload(payload: Mapping[str, object], defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class ProvisionConfig:
    work_dir: Path = DEFAULT_WORK_DIR
    pre_release: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    github_token: str = ""


def resolve_provision_config(
    root: Path | None = None,
    *,
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> ProvisionConfig:
    """Merge ``[provision]`` from TOML, environment overrides, then explicit overrides.

    Later sources win; ``None`` values in ``overrides`` leave the earlier value alone.
    """
    section = provision_defaults(root=root, config_path=config_path)

    env_values: dict[str, object] = {
        "work_dir": env_text(WORK_DIR_ENV_KEY, environ=environ) or None,
        "pre_release": env_flag(PRE_RELEASE_ENV_KEY, environ=environ),
        "timeout": env_text(TIMEOUT_ENV_KEY, environ=environ) or None,
    }
    merged = merge_payload(env_values, section)
    merged = merge_payload(overrides or {}, merged)

    work_dir = Path(str(merged.get("work_dir") or DEFAULT_WORK_DIR)).expanduser()
    if root is not None and not work_dir.is_absolute():
        work_dir = root / work_dir

    raw_timeout = merged.get("timeout")
    if isinstance(raw_timeout, (int, float)) and not isinstance(raw_timeout, bool):
        timeout_seconds = parse_duration_seconds(str(raw_timeout))
    elif isinstance(raw_timeout, str) and raw_timeout.strip():
        timeout_seconds = parse_duration_seconds(raw_timeout)
    else:
        timeout_seconds = DEFAULT_TIMEOUT_SECONDS

    return ProvisionConfig(
        work_dir=work_dir,
        pre_release=_as_bool(merged.get("pre_release", False)),
        timeout_seconds=timeout_seconds,
        github_token=first_env_text(GITHUB_TOKEN_ENV_KEYS, environ=environ),
    )
