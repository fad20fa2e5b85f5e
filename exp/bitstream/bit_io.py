#!/usr/bin/env python3
"""Bit-granular reads and writes over byte channels (big-endian, MSB first)."""
import io
from typing import BinaryIO, Iterable, Optional, Union

import numpy as np


EOF = -1

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]


class InvalidWidthError(ValueError):
    pass


class ValueOutOfRangeError(ValueError):
    pass


class ExhaustedStreamError(ValueError, EOFError):
    pass


def check_width(width: int, max_width: int) -> None:
    if width < 1 or width > max_width:
        raise InvalidWidthError(f"Illegal bit width {width}, expected 1..{max_width}.")


def check_value(value: int, width: int) -> None:
    if value < 0 or value >> width:
        raise ValueOutOfRangeError(f"Value {value} does not fit in {width} unsigned bits.")


class BitReader:
    """Reads bits, MSB first, from bytes or a binary file object.

    One byte is buffered at a time. `_buffer` holds EOF once the source is
    drained, which no byte value can collide with.
    """

    def __init__(self, source: ByteSource) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        self._source = source
        self._buffer = EOF
        self._nbits = 0
        self._fill_buffer()

    def _fill_buffer(self) -> None:
        chunk = self._source.read(1)
        if chunk:
            self._buffer = chunk[0]
            self._nbits = 8
        else:
            self._buffer = EOF
            self._nbits = -1

    @property
    def is_empty(self) -> bool:
        return self._buffer == EOF

    def is_exhausted(self) -> bool:
        return self.is_empty

    def read_bit(self) -> int:
        if self.is_empty:
            raise ExhaustedStreamError("Reading from empty input stream.")
        self._nbits -= 1
        bit = (self._buffer >> self._nbits) & 1
        if self._nbits == 0:
            self._fill_buffer()
        return bit

    def _read_byte_bits(self) -> int:
        if self.is_empty:
            raise ExhaustedStreamError("Reading from empty input stream.")

        if self._nbits == 8:
            x = self._buffer
            self._fill_buffer()
            return x & 0xFF

        # splice the low n bits of the current byte with the high 8-n of the next
        x = self._buffer << (8 - self._nbits)
        old_n = self._nbits
        self._fill_buffer()
        if self.is_empty:
            raise ExhaustedStreamError("Reading from empty input stream.")
        self._nbits = old_n
        x |= self._buffer >> old_n
        return x & 0xFF

    def _read_bits(self, width: int) -> int:
        x = 0
        whole, rest = divmod(width, 8)
        for _ in range(whole):
            x = (x << 8) | self._read_byte_bits()
        for _ in range(rest):
            x = (x << 1) | self.read_bit()
        return x

    def read_bits(self, width: int) -> int:
        check_width(width, 32)
        return self._read_bits(width)

    def read_char(self, width: int = 8) -> int:
        check_width(width, 16)
        if width == 8:
            return self._read_byte_bits()
        return self._read_bits(width)

    def read_long(self, width: int = 64) -> int:
        check_width(width, 64)
        return self._read_bits(width)

    def read_byte(self) -> int:
        return self._read_byte_bits()

    def read_short(self) -> int:
        return self._read_bits(16)

    def read_int(self) -> int:
        return self._read_bits(32)

    def read_float(self) -> float:
        return float(np.uint32(self.read_int()).view(np.float32))

    def read_double(self) -> float:
        return float(np.uint64(self.read_long()).view(np.float64))

    def read_remaining_as_bytes(self) -> bytes:
        if self.is_empty:
            raise ExhaustedStreamError("Reading from empty input stream.")
        out = bytearray()
        while not self.is_empty:
            out.append(self._read_byte_bits())
        return bytes(out)


class BitWriter:
    """Writes bits, MSB first, to a binary sink or an in-memory buffer.

    Call finalize() (or close()) when done; until then up to 7 bits may
    still sit in the accumulator.
    """

    def __init__(self, sink: Optional[BinaryIO] = None) -> None:
        self._sink = sink
        self._buf = bytearray()
        self._acc = 0
        self._nbits = 0
        self._closed = False

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _emit(self, byte: int) -> None:
        if self._sink is None:
            self._buf.append(byte)
        else:
            self._sink.write(bytes((byte,)))

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Write to closed BitWriter.")

    def write_bit(self, bit: int) -> None:
        self._check_open()
        self._acc = (self._acc << 1) | (1 if bit else 0)
        self._nbits += 1
        if self._nbits == 8:
            self._emit(self._acc)
            self._acc = 0
            self._nbits = 0

    def _write_byte_bits(self, x: int) -> None:
        self._check_open()
        if self._nbits == 0:
            self._emit(x)
            return
        for i in range(7, -1, -1):
            self.write_bit((x >> i) & 1)

    def _write_bits(self, value: int, width: int) -> None:
        whole, rest = divmod(width, 8)
        for i in range(rest - 1, -1, -1):
            self.write_bit((value >> (whole * 8 + i)) & 1)
        for shift in range((whole - 1) * 8, -1, -8):
            self._write_byte_bits((value >> shift) & 0xFF)

    def write_bits(self, value: int, width: int) -> None:
        check_width(width, 32)
        check_value(value, width)
        self._write_bits(value, width)

    def write_char(self, value: int, width: int = 8) -> None:
        check_width(width, 16)
        check_value(value, width)
        self._write_bits(value, width)

    def write_long(self, value: int, width: int = 64) -> None:
        check_width(width, 64)
        check_value(value, width)
        self._write_bits(value, width)

    def write_byte(self, value: int) -> None:
        check_value(value, 8)
        self._write_byte_bits(value)

    def write_short(self, value: int) -> None:
        check_value(value, 16)
        self._write_bits(value, 16)

    def write_int(self, value: int) -> None:
        check_value(value, 32)
        self._write_bits(value, 32)

    def write_float(self, value: float) -> None:
        self._write_bits(int(np.float32(value).view(np.uint32)), 32)

    def write_double(self, value: float) -> None:
        self._write_bits(int(np.float64(value).view(np.uint64)), 64)

    def write_string(self, data: Union[str, bytes, Iterable[int]], width: int = 8) -> None:
        check_width(width, 16)
        codes = (ord(ch) for ch in data) if isinstance(data, str) else data
        for code in codes:
            check_value(code, width)
            self._write_bits(code, width)

    def finalize(self) -> None:
        if self._closed:
            return
        if self._nbits:
            self._emit((self._acc << (8 - self._nbits)) & 0xFF)
            self._acc = 0
            self._nbits = 0
        if self._sink is not None:
            self._sink.flush()

    def finish(self) -> bytes:
        self.finalize()
        return self.getvalue()

    def getvalue(self) -> bytes:
        if self._sink is not None:
            raise ValueError("BitWriter writes to an external sink.")
        return bytes(self._buf)

    def close(self) -> None:
        if self._closed:
            return
        self.finalize()
        self._closed = True
        if self._sink is not None:
            self._sink.close()
