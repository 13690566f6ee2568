"""
Borsh - the canonical binary layout NEAR uses for transactions.

Little-endian fixed-width integers, u32 length prefixes for strings,
byte vectors and sequences, a single u8 tag in front of enum variants.
"""

from __future__ import annotations

import io
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")


class Serializer:
    def __init__(self) -> None:
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def u8(self, value: int) -> None:
        self._write_int(value, 1)

    def u32(self, value: int) -> None:
        self._write_int(value, 4)

    def u64(self, value: int) -> None:
        self._write_int(value, 8)

    def u128(self, value: int) -> None:
        self._write_int(value, 16)

    def fixed_bytes(self, value: bytes, length: int) -> None:
        if len(value) != length:
            raise ValueError(f"Expected {length} bytes, got {len(value)}")
        self._output.write(value)

    def to_bytes(self, value: bytes) -> None:
        self.u32(len(value))
        self._output.write(value)

    def str(self, value: str) -> None:
        self.to_bytes(value.encode("utf-8"))

    def sequence(self, values: Sequence[T], encoder: Callable[["Serializer", T], None]) -> None:
        self.u32(len(values))
        for value in values:
            encoder(self, value)

    def option(self, value: T | None, encoder: Callable[["Serializer", T], None]) -> None:
        if value is None:
            self.u8(0)
        else:
            self.u8(1)
            encoder(self, value)

    def _write_int(self, value: int, length: int) -> None:
        if value < 0 or value >= 1 << (8 * length):
            raise ValueError(f"{value} does not fit in u{8 * length}")
        self._output.write(value.to_bytes(length, "little"))


class Deserializer:
    def __init__(self, data: bytes) -> None:
        self._input = io.BytesIO(data)
        self._length = len(data)

    def remaining(self) -> int:
        return self._length - self._input.tell()

    def u8(self) -> int:
        return self._read_int(1)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def u128(self) -> int:
        return self._read_int(16)

    def fixed_bytes(self, length: int) -> bytes:
        return self._read(length)

    def to_bytes(self) -> bytes:
        return self._read(self.u32())

    def str(self) -> str:
        return self.to_bytes().decode("utf-8")

    def sequence(self, decoder: Callable[["Deserializer"], T]) -> list[T]:
        return [decoder(self) for _ in range(self.u32())]

    def option(self, decoder: Callable[["Deserializer"], T]) -> T | None:
        if self.u8() == 0:
            return None
        return decoder(self)

    def _read_int(self, length: int) -> int:
        return int.from_bytes(self._read(length), "little")

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if len(value) != length:
            raise ValueError(f"Unexpected end of input: wanted {length} bytes, got {len(value)}")
        return value
