from __future__ import annotations

import re
from typing import Any

from eth_utils import is_checksum_address, is_checksum_formatted_address, is_hex_address

_HEX_BYTES = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")


def is_address(address: Any) -> bool:
    """0x-prefixed 20-byte hex address; mixed case must be a valid EIP-55 checksum."""
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    if not is_hex_address(address):
        return False
    if is_checksum_formatted_address(address):
        return is_checksum_address(address)
    return True


def is_bytes(value: Any) -> bool:
    if isinstance(value, (bytes, bytearray)):
        return True
    return isinstance(value, str) and _HEX_BYTES.match(value) is not None


def is_bytes32(value: Any) -> bool:
    return is_bytes(value) and len(to_bytes(value)) == 32


def to_bytes(value: bytes | bytearray | str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not is_bytes(value):
        raise ValueError(f"Not a hex byte string: {value!r}")
    return bytes.fromhex(value[2:])


# Durations in seconds. A month is fixed at four weeks.

def seconds(n: int = 1) -> int:
    return n


def minutes(n: int = 1) -> int:
    return n * seconds(60)


def hours(n: int = 1) -> int:
    return n * minutes(60)


def days(n: int = 1) -> int:
    return n * hours(24)


def weeks(n: int = 1) -> int:
    return n * days(7)


def months(n: int = 1) -> int:
    return n * weeks(4)
