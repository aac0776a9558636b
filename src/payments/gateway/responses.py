"""Parsing of gateway response bodies.

The gateway answers either with a JSON object or with a form-encoded body,
and does not say which. Parsing tries JSON first, then form decoding, and
reports which one worked. A body that is neither is kept as ``Unparseable``
and classifies as a decline.
"""

import json
from dataclasses import dataclass, field
from urllib.parse import parse_qsl


@dataclass(frozen=True)
class Structured:
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class FormEncoded:
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Unparseable:
    raw: str = ""


ParsedResponse = Structured | FormEncoded | Unparseable


def parse_gateway_response(body: str | None) -> ParsedResponse:
    text = (body or "").strip()
    if not text:
        return Unparseable(raw=body or "")

    try:
        decoded = json.loads(text)
    except ValueError:
        pass
    else:
        if isinstance(decoded, dict):
            return Structured(fields=decoded)
        return Unparseable(raw=text)

    try:
        pairs = parse_qsl(text, keep_blank_values=True, strict_parsing=True)
    except ValueError:
        return Unparseable(raw=text)
    if not pairs:
        return Unparseable(raw=text)
    return FormEncoded(fields=dict(pairs))


def read_field(fields: dict, name: str) -> str | None:
    """Look up ``name`` in PascalCase first, then camelCase (``ResultCode``, ``resultCode``)."""
    for key in (name, name[:1].lower() + name[1:]):
        value = fields.get(key)
        if value not in (None, ""):
            return str(value)
    return None
