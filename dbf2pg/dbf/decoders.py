"""Per-type field decoders.

Each supported type tag maps to a pure function of the field's raw bytes
that returns the value as COPY-ready text:

  C, N, F   text, surrounding whitespace trimmed
  Y         currency, int64 LE scaled by 10000
  D         YYYYMMDD -> YYYY-MM-DD (no calendar validation)
  T         Julian day (int32 LE) + milliseconds since midnight (int32 LE)
  B         IEEE-754 double LE
  I         int32 LE
  L         Y/T -> t, anything else -> f

Memo fields (M) are resolved by a memo store, not here. Unknown tags decode
to empty text so that a single exotic column never aborts a whole table.
"""
from __future__ import annotations

import struct
from datetime import datetime, timedelta
from decimal import Decimal
from functools import partial
from typing import Callable, Optional

from dbf2pg.dbf.constants import JULIAN_OFFSET
from dbf2pg.dbf.errors import FormatError

Decoder = Callable[[bytes], str]

_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_DOUBLE = struct.Struct("<d")
_TIMESTAMP = struct.Struct("<ii")   # julian day(4) + ms since midnight(4)

_CURRENCY_SCALE = Decimal(10000)
_TRUE_BYTES = frozenset(b"YT")
_DAY_ONE = datetime(1, 1, 1)


def decode_text(raw: bytes, encoding: str = "ascii") -> str:
    return raw.decode(encoding, errors="replace").strip()


def decode_currency(raw: bytes) -> str:
    value = _INT64.unpack_from(raw)[0]
    return str(Decimal(value) / _CURRENCY_SCALE)


def decode_date(raw: bytes) -> str:
    text = raw.decode("ascii", errors="replace")
    return f"{text[0:4]}-{text[4:6]}-{text[6:8]}"


def decode_timestamp(raw: bytes) -> str:
    julian_day, millis = _TIMESTAMP.unpack_from(raw)
    if julian_day == 0:
        return ""
    ordinal = julian_day - JULIAN_OFFSET
    if ordinal < 1:
        raise FormatError(f"Timestamp Julian day {julian_day} is before 0001-01-01")
    try:
        stamp = _DAY_ONE + timedelta(days=ordinal - 1, milliseconds=millis)
    except (OverflowError, ValueError) as exc:
        raise FormatError(f"Timestamp Julian day {julian_day} is out of range") from exc
    return format_timestamp(stamp)


def format_timestamp(stamp: datetime) -> str:
    """Render as YYYY-MM-DD HH:MM:SS[.mmm], independent of locale."""
    text = (
        f"{stamp.year:04d}-{stamp.month:02d}-{stamp.day:02d} "
        f"{stamp.hour:02d}:{stamp.minute:02d}:{stamp.second:02d}"
    )
    millis = stamp.microsecond // 1000
    if millis:
        text += f".{millis:03d}"
    return text


def decode_double(raw: bytes) -> str:
    value = _DOUBLE.unpack_from(raw)[0]
    # Integral values print without the trailing ".0"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def decode_integer(raw: bytes) -> str:
    return str(_INT32.unpack_from(raw)[0])


def decode_logical(raw: bytes) -> str:
    return "t" if raw[:1] and raw[0] in _TRUE_BYTES else "f"


def decode_unsupported(raw: bytes) -> str:
    return ""


_DECODERS: dict[str, Decoder] = {
    "Y": decode_currency,
    "D": decode_date,
    "T": decode_timestamp,
    "B": decode_double,
    "I": decode_integer,
    "L": decode_logical,
}

# Tags whose decoder depends on the table's text encoding
TEXT_TYPES = frozenset("CNF")
MEMO_TYPE = "M"


def get_decoder(type_tag: str, encoding: str = "ascii") -> Optional[Decoder]:
    """Select the decoder for a type tag once, for reuse on every record.

    Returns None for memo fields, which need a memo store bound to them.
    """
    if type_tag == MEMO_TYPE:
        return None
    if type_tag in TEXT_TYPES:
        if encoding == "ascii":
            return decode_text
        return partial(decode_text, encoding=encoding)
    return _DECODERS.get(type_tag, decode_unsupported)


def decode(type_tag: str, raw: bytes, encoding: str = "ascii") -> str:
    """Decode one field value. Memo pointers cannot be decoded standalone."""
    decoder = get_decoder(type_tag, encoding)
    if decoder is None:
        raise ValueError("Memo fields must be resolved through a memo store")
    return decoder(raw)


def is_supported(type_tag: str) -> bool:
    return type_tag == MEMO_TYPE or type_tag in TEXT_TYPES or type_tag in _DECODERS
