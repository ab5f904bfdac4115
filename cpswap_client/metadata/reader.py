"""Bounds-checked little-endian reader over an account byte buffer."""

import struct
from typing import Optional


class BinaryReader:
    """Sequential reader that returns None instead of reading past the end.

    Callers turn a None into the format error that fits their layout.
    """

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def u16(self) -> Optional[int]:
        if self.remaining < 2:
            return None
        (value,) = struct.unpack_from("<H", self.data, self.offset)
        self.offset += 2
        return value

    def u32(self) -> Optional[int]:
        if self.remaining < 4:
            return None
        (value,) = struct.unpack_from("<I", self.data, self.offset)
        self.offset += 4
        return value

    def take(self, n: int) -> Optional[bytes]:
        if n < 0 or n > self.remaining:
            return None
        value = self.data[self.offset:self.offset + n]
        self.offset += n
        return value

    def borsh_string(self) -> Optional[str]:
        """Read a u32 length-prefixed string (not NUL-terminated)."""
        start = self.offset
        length = self.u32()
        if length is None or length > self.remaining:
            self.offset = start
            return None
        raw = self.take(length)
        return raw.decode("utf-8", errors="replace")


def trim_meta(text: str) -> str:
    """Strip trailing NUL padding, then surrounding whitespace."""
    return text.rstrip("\x00").strip()
