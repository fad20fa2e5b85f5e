import io
import random

import pytest

from bit_io import (
    BitReader,
    BitWriter,
    ExhaustedStreamError,
    InvalidWidthError,
    ValueOutOfRangeError,
)


def to_bits(data):
    return [(byte >> i) & 1 for byte in data for i in range(7, -1, -1)]


def pack_bits(bits):
    bits = list(bits) + [0] * (-len(bits) % 8)
    out = bytearray()
    for i in range(0, len(bits), 8):
        byte = 0
        for bit in bits[i:i + 8]:
            byte = (byte << 1) | bit
        out.append(byte)
    return bytes(out)


def value_bits(value, width):
    return [(value >> i) & 1 for i in range(width - 1, -1, -1)]


def test_read_bit_msb_first():
    reader = BitReader(b"\xA5")
    assert [reader.read_bit() for _ in range(8)] == [1, 0, 1, 0, 0, 1, 0, 1]
    assert reader.is_exhausted()


def test_read_bits_across_byte_boundary():
    reader = BitReader(b"\xAB\xCD")
    assert reader.read_bits(3) == 0b101
    assert reader.read_bits(8) == 0x5E
    assert reader.read_bits(5) == 0b01101
    assert reader.is_exhausted()


def test_read_char_splices_misaligned_byte():
    reader = BitReader(b"\x0F\xF0")
    assert reader.read_bits(4) == 0
    assert reader.read_char() == 0xFF
    assert reader.read_bits(4) == 0


def test_reads_match_bit_by_bit_reference():
    rng = random.Random(7)
    data = bytes(rng.getrandbits(8) for _ in range(64))
    bits = to_bits(data)
    reader = BitReader(data)
    pos = 0
    while len(bits) - pos >= 32:
        width = rng.choice([1, 3, 7, 8, 9, 13, 16, 31, 32])
        expected = 0
        for bit in bits[pos:pos + width]:
            expected = (expected << 1) | bit
        assert reader.read_bits(width) == expected
        pos += width


def test_max_widths():
    data = bytes(range(1, 9))
    assert BitReader(data).read_bits(32) == 0x01020304
    assert BitReader(data).read_char(16) == 0x0102
    assert BitReader(data).read_long(64) == 0x0102030405060708


@pytest.mark.parametrize("width", [0, 33, 40])
def test_read_bits_invalid_width(width):
    with pytest.raises(InvalidWidthError):
        BitReader(b"\x00" * 8).read_bits(width)


def test_narrow_and_wide_width_limits():
    reader = BitReader(b"\x00" * 16)
    with pytest.raises(InvalidWidthError):
        reader.read_char(17)
    with pytest.raises(InvalidWidthError):
        reader.read_long(65)


def test_fixed_width_reads_are_big_endian():
    reader = BitReader(io.BytesIO(b"\x7F\x12\x34\xDE\xAD\xBE\xEF" + bytes(range(8))))
    assert reader.read_byte() == 0x7F
    assert reader.read_short() == 0x1234
    assert reader.read_int() == 0xDEADBEEF
    assert reader.read_long() == 0x0001020304050607


def test_empty_source_is_exhausted():
    reader = BitReader(b"")
    assert reader.is_exhausted()
    with pytest.raises(ExhaustedStreamError):
        reader.read_bit()


def test_short_read_raises_exhausted():
    reader = BitReader(b"\x01")
    with pytest.raises(ExhaustedStreamError):
        reader.read_bits(9)


def test_exhausted_is_eof_error():
    with pytest.raises(EOFError):
        BitReader(b"").read_byte()


def test_read_remaining_as_bytes():
    reader = BitReader(b"xabc")
    assert reader.read_byte() == ord("x")
    assert reader.read_remaining_as_bytes() == b"abc"
    assert reader.is_exhausted()
    with pytest.raises(ExhaustedStreamError):
        reader.read_remaining_as_bytes()


def test_read_remaining_requires_byte_alignment():
    reader = BitReader(b"ab")
    reader.read_bit()
    with pytest.raises(ExhaustedStreamError):
        reader.read_remaining_as_bytes()


def test_write_bits_packs_msb_first():
    writer = BitWriter()
    writer.write_bits(0b101, 3)
    writer.write_bits(0x5E, 8)
    writer.write_bits(0b01101, 5)
    assert writer.finish() == b"\xAB\xCD"


def test_writes_match_bit_by_bit_reference():
    rng = random.Random(11)
    writer = BitWriter()
    bits = []
    for _ in range(200):
        width = rng.randint(1, 32)
        value = rng.getrandbits(width)
        writer.write_bits(value, width)
        bits.extend(value_bits(value, width))
    assert writer.finish() == pack_bits(bits)


def test_finalize_zero_pads_and_is_idempotent():
    writer = BitWriter()
    writer.write_bit(1)
    writer.write_bit(1)
    writer.finalize()
    writer.finalize()
    assert writer.getvalue() == b"\xC0"


def test_unfinalized_bits_are_not_emitted():
    writer = BitWriter()
    writer.write_bits(0b1111111, 7)
    assert writer.getvalue() == b""


@pytest.mark.parametrize("value,width", [(8, 3), (-1, 4), (256, 8)])
def test_write_bits_value_out_of_range(value, width):
    with pytest.raises(ValueOutOfRangeError):
        BitWriter().write_bits(value, width)


def test_write_width_limits():
    writer = BitWriter()
    with pytest.raises(InvalidWidthError):
        writer.write_bits(0, 0)
    with pytest.raises(InvalidWidthError):
        writer.write_bits(1, 33)
    with pytest.raises(InvalidWidthError):
        writer.write_char(1, 17)
    with pytest.raises(InvalidWidthError):
        writer.write_long(1, 65)


def test_fixed_width_writes():
    writer = BitWriter()
    writer.write_bit(0)
    writer.write_byte(0xFF)
    writer.write_short(0x1234)
    writer.write_int(0xDEADBEEF)
    writer.write_long(0x0102030405060708)
    reader = BitReader(writer.finish())
    assert reader.read_bit() == 0
    assert reader.read_byte() == 0xFF
    assert reader.read_short() == 0x1234
    assert reader.read_int() == 0xDEADBEEF
    assert reader.read_long() == 0x0102030405060708


def test_float_and_double_bit_patterns():
    writer = BitWriter()
    writer.write_float(1.5)
    writer.write_double(-2.25)
    blob = writer.finish()
    assert blob[:4] == b"\x3F\xC0\x00\x00"
    reader = BitReader(blob)
    assert reader.read_float() == 1.5
    assert reader.read_double() == -2.25


def test_write_string():
    writer = BitWriter()
    writer.write_string("AB")
    writer.write_string(b"\x01\x02", 4)
    assert writer.finish() == b"AB\x12"
    with pytest.raises(ValueOutOfRangeError):
        BitWriter().write_string("\u0100")


def test_external_sink_and_close():
    sink = io.BytesIO()
    writer = BitWriter(sink)
    writer.write_bits(0b101, 3)
    writer.finalize()
    assert sink.getvalue() == b"\xA0"
    writer.close()
    assert sink.closed
    assert writer.closed
    with pytest.raises(ValueError):
        writer.write_bit(1)


def test_context_manager_closes():
    with BitWriter() as writer:
        writer.write_bits(0b1, 1)
    assert writer.closed
    assert writer.getvalue() == b"\x80"
