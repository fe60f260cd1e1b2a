"""
Clarity value decoder for contract log payloads.

Hiro returns each smart_contract_log event with ``contract_log.value.hex``,
the consensus serialization of a Clarity value. Hold-to-earn contracts print
a tuple such as ``{op: "HARVEST_ENERGY", sender: SP..., energy: u100, integral: u500}``.

Decoding maps Clarity types onto Python values:
  int / uint            -> int
  buff                  -> bytes
  true / false          -> bool
  standard principal    -> "SP..." (c32check address)
  contract principal    -> "SP....contract-name"
  (ok v) / (err v)      -> ClarityResponse
  none / (some v)       -> None / v
  list                  -> list
  tuple                 -> dict (field order preserved)
  string-ascii / -utf8  -> str

All lengths are big-endian u32; principals carry a 1-byte version and a
20-byte hash160.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from typing import Any

from backend_energy.core.exceptions import ClarityDecodeError

TYPE_INT = 0x00
TYPE_UINT = 0x01
TYPE_BUFFER = 0x02
TYPE_TRUE = 0x03
TYPE_FALSE = 0x04
TYPE_PRINCIPAL_STANDARD = 0x05
TYPE_PRINCIPAL_CONTRACT = 0x06
TYPE_RESPONSE_OK = 0x07
TYPE_RESPONSE_ERR = 0x08
TYPE_OPTIONAL_NONE = 0x09
TYPE_OPTIONAL_SOME = 0x0A
TYPE_LIST = 0x0B
TYPE_TUPLE = 0x0C
TYPE_STRING_ASCII = 0x0D
TYPE_STRING_UTF8 = 0x0E

HASH160_LEN = 20
INT128_LEN = 16
MAX_DEPTH = 32

C32_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


@dataclass(frozen=True)
class ClarityResponse:
    """A decoded (ok ...) or (err ...) value."""

    ok: bool
    value: Any


# -----------------------------------------------------------------------------
# c32check (Stacks address encoding)
# -----------------------------------------------------------------------------


def c32_encode(data: bytes) -> str:
    """Base-32 (Crockford-like c32 alphabet) encoding; one '0' per leading zero byte."""
    n = int.from_bytes(data, "big")
    chars: list[str] = []
    while n > 0:
        n, rem = divmod(n, 32)
        chars.append(C32_ALPHABET[rem])
    leading_zero_bytes = len(data) - len(data.lstrip(b"\x00"))
    return "0" * leading_zero_bytes + "".join(reversed(chars))


def c32check_encode(version: int, data: bytes) -> str:
    if not 0 <= version < 32:
        raise ClarityDecodeError(f"Invalid c32 version byte: {version}")
    checksum = hashlib.sha256(hashlib.sha256(bytes([version]) + data).digest()).digest()[:4]
    return C32_ALPHABET[version] + c32_encode(data + checksum)


def c32_address(version: int, hash160: bytes) -> str:
    """Render a Stacks address, e.g. version 22 (mainnet single-sig) -> 'SP...'."""
    if len(hash160) != HASH160_LEN:
        raise ClarityDecodeError(f"hash160 must be {HASH160_LEN} bytes, got {len(hash160)}")
    return "S" + c32check_encode(version, hash160)


# -----------------------------------------------------------------------------
# Decoder
# -----------------------------------------------------------------------------


class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise ClarityDecodeError(
                f"Unexpected end of data: need {n} bytes at offset {self.pos}, have {len(self.data) - self.pos}"
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack(">I", self.take(4))[0]

    def remaining(self) -> int:
        return len(self.data) - self.pos


def _read_principal(reader: _Reader) -> str:
    version = reader.u8()
    return c32_address(version, reader.take(HASH160_LEN))


def _read_value(reader: _Reader, depth: int = 0) -> Any:
    if depth > MAX_DEPTH:
        raise ClarityDecodeError("Clarity value nested too deeply")
    type_id = reader.u8()

    if type_id == TYPE_INT:
        return int.from_bytes(reader.take(INT128_LEN), "big", signed=True)
    if type_id == TYPE_UINT:
        return int.from_bytes(reader.take(INT128_LEN), "big", signed=False)
    if type_id == TYPE_BUFFER:
        return reader.take(reader.u32())
    if type_id == TYPE_TRUE:
        return True
    if type_id == TYPE_FALSE:
        return False
    if type_id == TYPE_PRINCIPAL_STANDARD:
        return _read_principal(reader)
    if type_id == TYPE_PRINCIPAL_CONTRACT:
        address = _read_principal(reader)
        name = reader.take(reader.u8()).decode("ascii")
        return f"{address}.{name}"
    if type_id in (TYPE_RESPONSE_OK, TYPE_RESPONSE_ERR):
        return ClarityResponse(ok=type_id == TYPE_RESPONSE_OK, value=_read_value(reader, depth + 1))
    if type_id == TYPE_OPTIONAL_NONE:
        return None
    if type_id == TYPE_OPTIONAL_SOME:
        return _read_value(reader, depth + 1)
    if type_id == TYPE_LIST:
        return [_read_value(reader, depth + 1) for _ in range(reader.u32())]
    if type_id == TYPE_TUPLE:
        result: dict[str, Any] = {}
        for _ in range(reader.u32()):
            key = reader.take(reader.u8()).decode("ascii")
            result[key] = _read_value(reader, depth + 1)
        return result
    if type_id == TYPE_STRING_ASCII:
        return reader.take(reader.u32()).decode("ascii")
    if type_id == TYPE_STRING_UTF8:
        return reader.take(reader.u32()).decode("utf-8")

    raise ClarityDecodeError(f"Unknown Clarity type id 0x{type_id:02x} at offset {reader.pos - 1}")


def decode_clarity_bytes(data: bytes) -> Any:
    """Decode one serialized Clarity value. Trailing bytes are an error."""
    reader = _Reader(data)
    try:
        value = _read_value(reader)
    except UnicodeDecodeError as e:
        raise ClarityDecodeError(f"Invalid string payload: {e}") from e
    if reader.remaining():
        raise ClarityDecodeError(f"{reader.remaining()} trailing bytes after Clarity value")
    return value


def decode_clarity_hex(hex_value: str) -> Any:
    """Decode a ``0x``-prefixed (or bare) hex string as returned by the Hiro API."""
    raw = (hex_value or "").strip()
    if raw[:2].lower() == "0x":
        raw = raw[2:]
    try:
        data = bytes.fromhex(raw)
    except ValueError as e:
        raise ClarityDecodeError(f"Invalid hex: {e}") from e
    if not data:
        raise ClarityDecodeError("Empty Clarity payload")
    return decode_clarity_bytes(data)
