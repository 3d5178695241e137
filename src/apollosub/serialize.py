"""Snapshot serialization into the published text formats.

Namespace snapshots become a structured document (JSON object, YAML mapping)
or a flat ``key=value`` properties document. Single-key snapshots are
published as the bare value with no quoting or key prefix.

Flat text has no native nesting, so mappings and sequences are always
rendered as compact JSON when a value has to become a single string.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

import yaml

from apollosub.config import ConfigFormat, parse_format
from apollosub.exceptions import ApolloSerializationError

_JSON_SEPARATORS = (",", ":")


def _dump_json(value: Any) -> str:
    try:
        return json.dumps(value, separators=_JSON_SEPARATORS, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ApolloSerializationError(f"Value is not JSON serializable: {exc}") from exc


def to_text(value: Any) -> str:
    """Coerce a single config value to text.

    ``None`` becomes ``""``, strings pass through unchanged, numbers and
    booleans use their JSON literal (``123``, ``3.14``, ``true``) and nested
    mappings or sequences are JSON encoded.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (bool, int, float)):
        return _dump_json(value)
    if isinstance(value, (Mapping, Sequence)):
        return _dump_json(_plain(value))
    return str(value)


def _plain(value: Any) -> Any:
    """Convert arbitrary mappings/sequences into dicts and lists for encoding."""
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_plain(v) for v in value]
    return value


def _dump_yaml(snapshot: Mapping[str, Any]) -> str:
    try:
        return yaml.safe_dump(_plain(snapshot), sort_keys=True, allow_unicode=True, default_flow_style=False)
    except yaml.YAMLError as exc:
        raise ApolloSerializationError(f"Value is not YAML serializable: {exc}") from exc


def _dump_properties(snapshot: Mapping[str, Any]) -> str:
    lines = [f"{key}={to_text(snapshot[key])}" for key in sorted(snapshot, key=str)]
    return "\n".join(lines)


def serialize(snapshot: Any, fmt: ConfigFormat | str, *, single_key: bool = False) -> str:
    """Render *snapshot* as text in *fmt*.

    Parameters
    ----------
    snapshot : Any
        A ``Mapping`` in namespace mode, the raw value in single-key mode.
    fmt : ConfigFormat or str
        Output format.
    single_key : bool
        Publish *snapshot* as one bare value regardless of format.

    Raises
    ------
    ApolloSerializationError
        If the snapshot cannot be encoded.
    ApolloConfigError
        If *fmt* is not a supported format.
    """
    if not isinstance(fmt, ConfigFormat):
        fmt = parse_format(fmt)

    if single_key:
        return to_text(snapshot)

    if not isinstance(snapshot, Mapping):
        raise ApolloSerializationError(
            f"Namespace snapshot must be a mapping, got {type(snapshot).__name__}"
        )

    if fmt is ConfigFormat.JSON:
        return _dump_json(_plain(snapshot))
    if fmt is ConfigFormat.YAML:
        return _dump_yaml(snapshot)
    return _dump_properties(snapshot)
