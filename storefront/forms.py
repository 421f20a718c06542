"""Form encoding for the Stripe REST API.

Stripe takes ``application/x-www-form-urlencoded`` bodies with PHP-style
nesting: ``key[sub]=value`` for objects and ``key[0][sub]=value`` for lists
of objects. JSON bodies are rejected.
"""
from typing import Any, List, Mapping, Tuple
from urllib.parse import urlencode


def _flatten(value: Any, prefix: str, pairs: List[Tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(item, f"{prefix}[{key}]", pairs)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten(item, f"{prefix}[{index}]", pairs)
    elif isinstance(value, bool):
        pairs.append((prefix, "true" if value else "false"))
    else:
        pairs.append((prefix, str(value)))


def flatten_form_params(params: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Flatten ``params`` into ordered ``(key, value)`` pairs.

    ``{"line_items": [{"price": "p1", "quantity": 2}], "customer_update": {"address": "auto"}}``
    becomes ``[("line_items[0][price]", "p1"), ("line_items[0][quantity]", "2"),
    ("customer_update[address]", "auto")]``. Keys keep insertion order and
    ``None`` values are left out.
    """
    if not isinstance(params, Mapping):
        raise TypeError("Form parameters must be a mapping")
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        _flatten(value, str(key), pairs)
    return pairs


def encode_form(params: Mapping[str, Any]) -> str:
    # Brackets stay literal; Stripe parses them as nesting
    return urlencode(flatten_form_params(params), safe="[]")
