"""JSON-like value types exchanged with the language server.

Workspace configuration and initialization options are sent verbatim over the
wire, so their value space is declared as JSON-compatible rather than `Any`.
"""

from __future__ import annotations

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
