"""Signed envelope codec shared by checkout requests, API calls and callbacks.

LiqPay exchanges a ``data`` field holding base64-encoded JSON and a
``signature`` field computed as::

    base64(sha1(private_key + data + private_key))

The same functions are used in both directions, so a payload we build and a
payload the gateway posts back are verified identically.
"""

import base64
import binascii
import hashlib
import json
import secrets
from decimal import Decimal
from typing import Any, Dict, Mapping, NamedTuple

from ...errors import MalformedPayloadError


class SignedEnvelope(NamedTuple):
    data: str
    signature: str

    def as_form(self) -> Dict[str, str]:
        return {"data": self.data, "signature": self.signature}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        # keeps the JSON numeric; LiqPay rejects quoted amounts in some actions
        number = float(value)
        if Decimal(repr(number)) != value:
            raise ValueError(f"{value} cannot be sent as a JSON number without rounding")
        return number
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def sign(data: str, private_key: str) -> str:
    digest = hashlib.sha1(f"{private_key}{data}{private_key}".encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def encode(fields: Mapping[str, Any], private_key: str) -> SignedEnvelope:
    """Serialize ``fields`` in insertion order and sign the result.

    Decimal values are written as JSON numbers.

    Raises:
        ValueError: If a Decimal has more significant digits than a float keeps.
    """
    payload = json.dumps(dict(fields), ensure_ascii=False, default=_json_default)
    data = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return SignedEnvelope(data=data, signature=sign(data, private_key))


def verify(data: str, signature: str, private_key: str) -> bool:
    """Check that ``signature`` was produced for ``data`` with ``private_key``."""
    if not isinstance(data, str) or not isinstance(signature, str):
        return False
    expected = sign(data, private_key)
    return secrets.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def decode(data: str) -> Dict[str, Any]:
    """Decode a ``data`` blob back into its field map.

    Numbers with a fractional part are returned as ``Decimal``.

    Raises:
        MalformedPayloadError: If the blob is not base64 JSON describing an object.
    """
    try:
        raw = base64.b64decode(data, validate=True)
        fields = json.loads(raw.decode("utf-8"), parse_float=Decimal)
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
        raise MalformedPayloadError("Payload is not base64-encoded JSON") from e
    if not isinstance(fields, dict):
        raise MalformedPayloadError("Payload must decode to a JSON object")
    return fields
