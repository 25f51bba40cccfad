"""Little-endian byte cursor for the binary record formats."""

import struct
from typing import Sequence

from demonax.core.errors import DecodeError, UnexpectedEof

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")

_PREFIXES = {1: _U8, 2: _U16, 4: _U32}


class ByteCursor:
    """
    Sequential reader over an immutable byte buffer.

    Every read checks the remaining length first and raises UnexpectedEof
    instead of returning short or zero-filled data.
    """

    def __init__(self, data: bytes, position: int = 0) -> None:
        self._data = data
        self.position = position

    @property
    def remaining(self) -> int:
        return len(self._data) - self.position

    def at_end(self) -> bool:
        return self.position >= len(self._data)

    def _require(self, width: int) -> None:
        if width > self.remaining:
            raise UnexpectedEof(self.position, width, max(self.remaining, 0))

    def _unpack(self, codec: struct.Struct) -> int:
        self._require(codec.size)
        value = codec.unpack_from(self._data, self.position)[0]
        self.position += codec.size
        return value

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_bytes(self, count: int) -> bytes:
        self._require(count)
        chunk = self._data[self.position:self.position + count]
        self.position += count
        return chunk

    def read_string(self, prefix: int = 1, encoding: str = "latin-1") -> str:
        """
        Read a length-prefixed string.

        Args:
            prefix: Width of the length prefix in bytes (1, 2 or 4)
            encoding: Text encoding of the payload

        Returns:
            Decoded string
        """
        codec = _PREFIXES.get(prefix)
        if codec is None:
            raise ValueError(f"Unsupported string prefix width: {prefix}")
        length = self._unpack(codec)
        return self.read_bytes(length).decode(encoding)

    def expect_magic(self, magic: bytes) -> None:
        """Consume a magic tag or raise DecodeError."""
        found = self.read_bytes(len(magic))
        if found != magic:
            raise DecodeError(f"bad magic {found!r}, expected {magic!r}")

    def expect_version(self, *supported: int) -> int:
        version = self.read_u8()
        if version not in supported:
            raise DecodeError(f"unsupported format version {version}")
        return version

    def expect_end(self) -> None:
        if not self.at_end():
            raise DecodeError(
                f"{self.remaining} trailing byte(s) at offset {self.position}"
            )


def has_magic(data: bytes, magic: bytes) -> bool:
    return data[:len(magic)] == magic


def is_bit_set(flags: int, bit: int) -> bool:
    """Return True if bit number `bit` is set in `flags`."""
    return bool(flags >> bit & 1)


def bit_names(flags: int, names: Sequence[str]) -> list[str]:
    """Names of the set bits, in bit order. Bits beyond `names` are ignored."""
    return [name for bit, name in enumerate(names) if is_bit_set(flags, bit)]


def bits_from_names(names: Sequence[str], table: Sequence[str]) -> int:
    """Inverse of bit_names. Names missing from `table` contribute no bit."""
    lookup = {name.lower(): bit for bit, name in enumerate(table)}
    flags = 0
    for name in names:
        bit = lookup.get(name.lower())
        if bit is not None:
            flags |= 1 << bit
    return flags
