"""
Gorilla-style time series compression.

Timestamps are stored as delta-of-deltas in variable-size buckets and
values as the XOR against the previous value, keeping only the
meaningful bits. The layout:

    t0                    32 bits
    first delta           32 bits
    first value           64 bits
    per following point:
        delta-of-delta    '0' | '10'+7 | '110'+9 | '1110'+12 | '1111'+32
        value xor         '0' | '10'+meaningful bits | '11'+5+6+meaningful bits
    end marker            '1111' + 0xFFFFFFFF + '0'
"""

from __future__ import annotations

import struct
from typing import Iterable, Iterator

from whisper_importer.core.domain.types import Point

_END_OF_STREAM = 0xFFFFFFFF

# (control bits, control length, value bits)
_DOD_BUCKETS = (
    (0b10, 2, 7),
    (0b110, 3, 9),
    (0b1110, 4, 12),
)


def _float_bits(value: float) -> int:
    return struct.unpack(">Q", struct.pack(">d", value))[0]


def _bits_float(bits: int) -> float:
    return struct.unpack(">d", struct.pack(">Q", bits))[0]


def _leading_zeros(value: int) -> int:
    return 64 - value.bit_length()


def _trailing_zeros(value: int) -> int:
    return (value & -value).bit_length() - 1


class BitWriter:
    def __init__(self) -> None:
        self._buffer = bytearray()
        self._acc = 0
        self._count = 0

    def write_bits(self, value: int, nbits: int) -> None:
        for shift in range(nbits - 1, -1, -1):
            self.write_bit((value >> shift) & 1)

    def write_bit(self, bit: int) -> None:
        self._acc = (self._acc << 1) | (bit & 1)
        self._count += 1
        if self._count == 8:
            self._buffer.append(self._acc)
            self._acc = 0
            self._count = 0

    def getvalue(self) -> bytes:
        if self._count:
            return bytes(self._buffer) + bytes([self._acc << (8 - self._count)])
        return bytes(self._buffer)


class BitReader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def read_bit(self) -> int:
        byte_index, bit_index = divmod(self._pos, 8)
        if byte_index >= len(self._data):
            raise EOFError("unexpected end of chunk data")
        self._pos += 1
        return (self._data[byte_index] >> (7 - bit_index)) & 1

    def read_bits(self, nbits: int) -> int:
        value = 0
        for _ in range(nbits):
            value = (value << 1) | self.read_bit()
        return value


def _signed(value: int, nbits: int) -> int:
    # buckets hold [-(2^(n-1) - 1), 2^(n-1)]
    if value > 1 << (nbits - 1):
        return value - (1 << nbits)
    return value


class Encoder:
    """Streaming encoder for one chunk starting at t0."""

    def __init__(self, t0: int) -> None:
        self.t0 = t0
        self._writer = BitWriter()
        self._writer.write_bits(t0, 32)
        self._prev_ts: int | None = None
        self._prev_delta = 0
        self._prev_bits = 0
        self._leading = -1
        self._trailing = 0
        self._finished = False
        self.count = 0

    def push(self, ts: int, value: float) -> None:
        if self._finished:
            raise RuntimeError("cannot push to a finished encoder")

        bits = _float_bits(value)

        if self._prev_ts is None:
            delta = ts - self.t0
            if delta < 0:
                raise ValueError(f"timestamp {ts} precedes chunk t0 {self.t0}")
            self._writer.write_bits(delta, 32)
            self._writer.write_bits(bits, 64)
        else:
            delta = ts - self._prev_ts
            if delta <= 0:
                raise ValueError(
                    f"timestamps must increase ({ts} after {self._prev_ts})"
                )
            self._write_dod(delta - self._prev_delta)
            self._write_value(bits)

        self._prev_ts = ts
        self._prev_delta = delta
        self._prev_bits = bits
        self.count += 1

    def _write_dod(self, dod: int) -> None:
        writer = self._writer

        if dod == 0:
            writer.write_bit(0)
            return

        for control, control_len, nbits in _DOD_BUCKETS:
            low = -(1 << (nbits - 1)) + 1
            high = 1 << (nbits - 1)
            if low <= dod <= high:
                writer.write_bits(control, control_len)
                writer.write_bits(dod & ((1 << nbits) - 1), nbits)
                return

        writer.write_bits(0b1111, 4)
        writer.write_bits(dod & 0xFFFFFFFF, 32)

    def _write_value(self, bits: int) -> None:
        writer = self._writer
        xor = bits ^ self._prev_bits

        if xor == 0:
            writer.write_bit(0)
            return

        writer.write_bit(1)
        leading = min(_leading_zeros(xor), 31)
        trailing = _trailing_zeros(xor)

        if self._leading != -1 and leading >= self._leading and trailing >= self._trailing:
            writer.write_bit(0)
            meaningful = 64 - self._leading - self._trailing
            writer.write_bits(xor >> self._trailing, meaningful)
            return

        self._leading = leading
        self._trailing = trailing
        meaningful = 64 - leading - trailing

        writer.write_bit(1)
        writer.write_bits(leading, 5)
        # 64 meaningful bits does not fit in 6 bits; stored as 0
        writer.write_bits(meaningful & 0x3F, 6)
        writer.write_bits(xor >> trailing, meaningful)

    def finish(self) -> bytes:
        if not self._finished:
            self._writer.write_bits(0b1111, 4)
            self._writer.write_bits(_END_OF_STREAM, 32)
            self._writer.write_bit(0)
            self._finished = True
        return self._writer.getvalue()


def encode(t0: int, points: Iterable[Point]) -> bytes:
    encoder = Encoder(t0)
    for ts, value in points:
        encoder.push(ts, value)
    return encoder.finish()


def decode(data: bytes) -> Iterator[Point]:
    """Yield the points stored in an encoded chunk."""
    reader = BitReader(data)
    t0 = reader.read_bits(32)

    delta = reader.read_bits(32)
    if delta == _END_OF_STREAM:
        return

    ts = t0 + delta
    bits = reader.read_bits(64)
    yield Point(ts, _bits_float(bits))

    leading = 0
    trailing = 0

    while True:
        # delta of delta
        if reader.read_bit() == 0:
            dod = 0
        else:
            nbits = 32
            for _, _, bucket_bits in _DOD_BUCKETS:
                if reader.read_bit() == 0:
                    nbits = bucket_bits
                    break
            raw = reader.read_bits(nbits)
            if nbits == 32 and raw == _END_OF_STREAM:
                return
            dod = _signed(raw, nbits)

        delta += dod
        ts += delta

        # value
        if reader.read_bit() == 1:
            if reader.read_bit() == 1:
                leading = reader.read_bits(5)
                meaningful = reader.read_bits(6) or 64
                trailing = 64 - leading - meaningful
            meaningful = 64 - leading - trailing
            bits ^= reader.read_bits(meaningful) << trailing

        yield Point(ts, _bits_float(bits))
