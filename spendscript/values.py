"""Interpretation of Stack values.

Every Stack slot holds text. Whether that text is a number or a byte
string is decided by the op that consumes it: numbers are decimal (or
radix-prefixed) ints, byte strings are hex. The helpers below are the
only conversions ops may use, and each one fails with a specific
ScriptExecutionError subclass.
"""

from __future__ import annotations
from .errors import sert, tert, NotANumber, InvalidEncoding
import re


TRUE = '1'
FALSE = '0'
OPCODE_PREFIX = 'OP_'
INT_MIN = -2**63
INT_MAX = 2**63 - 1

_hex_pattern = re.compile(r'[0-9a-fA-F]*')


def is_opcode(token: str) -> bool:
    """Return True if the token has the shape of an opcode name."""
    return len(token) > len(OPCODE_PREFIX) and token.startswith(OPCODE_PREFIX)

def parse_int(value: str) -> int:
    """Parse a Stack value as a signed 64-bit int. Accepts decimal and
        the 0x/0o/0b radix prefixes; rejects surrounding whitespace,
        zero-padded decimals and values outside the int64 range. Raises
        NotANumber on failure.
    """
    sert(type(value) is str and len(value) > 0 and value.isascii()
         and value == value.strip(),
         f'{value!r} is not a number', NotANumber)

    try:
        number = int(value, 0)
    except ValueError:
        raise NotANumber(f'{value!r} is not a number') from None

    sert(INT_MIN <= number <= INT_MAX, f'{value!r} is out of range', NotANumber)
    return number

def format_int(number: int) -> str:
    """Format an int as canonical decimal text. Raises NotANumber if the
        int does not fit in 64 bits.
    """
    tert(type(number) is int, 'number must be int')
    sert(INT_MIN <= number <= INT_MAX, 'integer overflow', NotANumber)
    return str(number)

def parse_hex(value: str) -> bytes:
    """Decode a hex Stack value. Raises InvalidEncoding for odd length
        or non-hex characters.
    """
    sert(type(value) is str and len(value) % 2 == 0
         and _hex_pattern.fullmatch(value) is not None,
         f'{value!r} is not a hex string', InvalidEncoding)
    return bytes.fromhex(value)

def format_hex(data: bytes) -> str:
    """Encode bytes as lowercase hex text."""
    tert(type(data) is bytes, 'data must be bytes')
    return data.hex()

def is_true(value: str) -> bool:
    """Only the canonical TRUE value is truthy."""
    return value == TRUE

def bool_value(flag: bool) -> str:
    """Return the canonical Stack value for a bool."""
    return TRUE if flag else FALSE
