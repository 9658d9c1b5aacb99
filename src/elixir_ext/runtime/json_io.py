from __future__ import annotations

import json
from typing import Mapping


def canonicalize_json(value: object) -> object:
    if isinstance(value, Mapping):
        return {
            str(key): canonicalize_json(value[key])
            for key in sorted(value, key=str)
        }
    if isinstance(value, (list, tuple)):
        return [canonicalize_json(item) for item in value]
    return value


def dump_json_pretty(payload: object) -> str:
    # TOML dates/times are not JSON-native; they are emitted as their str() text.
    return json.dumps(canonicalize_json(payload), indent=2, default=str)
