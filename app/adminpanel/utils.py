from __future__ import annotations

import re

from flask import request

_BRACKET_KEY = re.compile(r"^(\w+)\[([^\]]+)\]$")


def request_data() -> dict:
    """Request body as a dict: JSON when sent as JSON, otherwise form fields."""
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}
    return request.form.to_dict()


def nested_field(data: dict, prefix: str) -> dict:
    """
    `data[prefix]` when it is already a mapping (JSON), else the form fields
    named `prefix[key]` collected into {key: value}.
    """
    value = data.get(prefix)
    if isinstance(value, dict):
        return value
    out: dict = {}
    for key, raw in data.items():
        m = _BRACKET_KEY.match(key)
        if m and m.group(1) == prefix:
            out[m.group(2)] = raw
    return out


def int_arg(raw, default: int | None = None) -> int | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def bool_arg(raw) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)
