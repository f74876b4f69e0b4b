import struct
from datetime import date

import pytest

from dbf2pg.dbf.constants import JULIAN_OFFSET
from dbf2pg.dbf.decoders import decode, get_decoder, is_supported
from dbf2pg.dbf.errors import FormatError


def _timestamp(day: date, millis: int = 0) -> bytes:
    return struct.pack("<ii", day.toordinal() + JULIAN_OFFSET, millis)


@pytest.mark.parametrize("raw", [b"Y", b"T"])
def test_logical_true(raw):
    assert decode("L", raw) == "t"


@pytest.mark.parametrize("raw", [b"N", b"F", b" ", b"y", b"t", b"?"])
def test_logical_false(raw):
    assert decode("L", raw) == "f"


def test_text_is_trimmed():
    assert decode("C", b"  hello   ") == "hello"
    assert decode("N", b"   12.50") == "12.50"
    assert decode("F", b" -3.1 ") == "-3.1"


def test_text_encoding():
    assert decode("C", b"caf\xe9   ", encoding="cp1252") == "café"
    assert decode("C", b"caf\xe9") == "caf\ufffd"


def test_currency_uses_decimal_scaling():
    assert decode("Y", struct.pack("<q", 123456789)) == "12345.6789"
    assert decode("Y", struct.pack("<q", -15000)) == "-1.5"
    assert decode("Y", struct.pack("<q", 0)) == "0"
    assert decode("Y", struct.pack("<q", 1)) == "0.0001"


def test_date_is_resliced_without_validation():
    assert decode("D", b"20230615") == "2023-06-15"
    assert decode("D", b"20231399") == "2023-13-99"


def test_timestamp_zero_day_is_empty():
    assert decode("T", struct.pack("<ii", 0, 5000)) == ""


def test_timestamp_known_dates():
    assert decode("T", struct.pack("<ii", 2440588, 0)) == "1970-01-01 00:00:00"
    assert decode("T", _timestamp(date(2023, 6, 15), 45296789)) == "2023-06-15 12:34:56.789"


@pytest.mark.parametrize("day", [date(1, 1, 1), date(1999, 12, 31), date(2024, 2, 29)])
def test_timestamp_date_round_trip(day):
    assert decode("T", _timestamp(day)) == f"{day.isoformat()} 00:00:00"


def test_timestamp_before_day_one():
    with pytest.raises(FormatError):
        decode("T", struct.pack("<ii", JULIAN_OFFSET, 0))


@pytest.mark.parametrize("julian_day", [2**31 - 1, 9999999])
def test_timestamp_after_year_9999(julian_day):
    with pytest.raises(FormatError, match="out of range"):
        decode("T", struct.pack("<ii", julian_day, 0))


def test_timestamp_millis_overflow_into_year_10000():
    with pytest.raises(FormatError):
        decode("T", _timestamp(date(9999, 12, 31), 86_400_000))


def test_double():
    assert decode("B", struct.pack("<d", 1.5)) == "1.5"
    assert decode("B", struct.pack("<d", 3.0)) == "3"
    assert decode("B", struct.pack("<d", -0.25)) == "-0.25"


def test_integer():
    assert decode("I", struct.pack("<i", -42)) == "-42"
    assert decode("I", struct.pack("<i", 2**31 - 1)) == "2147483647"


@pytest.mark.parametrize("tag", ["Q", "G", "P", "0"])
def test_unknown_type_decodes_to_empty(tag):
    assert decode(tag, b"\x01\x02\x03\x04") == ""
    assert not is_supported(tag)


def test_memo_has_no_standalone_decoder():
    assert get_decoder("M") is None
    assert is_supported("M")
    with pytest.raises(ValueError):
        decode("M", b"\x01\x00\x00\x00")


def test_decoder_is_reusable():
    decoder = get_decoder("I")
    assert decoder(struct.pack("<i", 7)) == "7"
    assert decoder(struct.pack("<i", 8)) == "8"
