"""
Bencode decoder for BitTorrent metainfo and tracker responses.
"""
import re
from typing import Tuple

from .errors import BencodeDecodeError
from .structure import BencodeDict, BencodeInt, BencodeList, BencodeString, BencodeType

# Canonical signed decimal: no leading zeros, no "-0"
_INT_RE = re.compile(rb"-?(0|[1-9][0-9]*)")


class BencodeDecoder:
    """
    Decodes Bencoded byte strings into BencodeType values.

    The cursor ``i`` is shared by every nested parse, so once the top-level
    value has been read it equals the number of bytes consumed.
    """
    def __init__(self, data: bytes):
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("Bencode input must be bytes")
        self.data = bytes(data)
        self.i = 0  # cursor index

    def decode(self) -> Tuple[BencodeType, int]:
        """Decodes the first complete value and reports how many bytes it used."""
        try:
            result = self._parse_value()
        except RecursionError as exc:
            raise BencodeDecodeError("Nesting too deep") from exc
        return result, self.i

    # --------------------------
    # Low-level utilities
    # --------------------------

    def _peek(self):
        if self.i >= len(self.data):
            raise BencodeDecodeError("Unexpected end of input")
        return self.data[self.i:self.i+1]

    def _consume(self, n=1):
        """Moves cursor forward by n bytes and returns the consumed chunk."""
        if self.i + n > len(self.data):
            raise BencodeDecodeError(
                f"Need {n} bytes at index {self.i}, only {len(self.data) - self.i} left"
            )
        chunk = self.data[self.i:self.i+n]
        self.i += n
        return chunk

    def _find(self, token: bytes, what: str) -> int:
        pos = self.data.find(token, self.i)
        if pos == -1:
            raise BencodeDecodeError(f"Unterminated {what} at index {self.i}")
        return pos

    # --------------------------
    # Parsing functions
    # --------------------------

    def _parse_value(self):
        ch = self._peek()

        if ch == b'i':
            return self._parse_int()

        if ch.isdigit(): # Bencode strings start with length, which is a digit
            return self._parse_string()

        if ch == b'l':
            return self._parse_list()

        if ch == b'd':
            return self._parse_dict()

        raise BencodeDecodeError(f"Invalid token at index {self.i}: {ch}")

    def _parse_int(self):
        """Parses an integer from the Bencoded data."""
        self._consume(1)  # skip 'i'

        end_pos = self._find(b'e', "integer")
        number_bytes = self.data[self.i:end_pos]

        if not _INT_RE.fullmatch(number_bytes) or number_bytes == b"-0":
            raise BencodeDecodeError(f"Invalid integer format: {number_bytes!r}")

        self.i = end_pos + 1  # skip 'e'
        return BencodeInt(int(number_bytes))

    def _parse_string(self):
        """Parses a byte string from the Bencoded data."""
        # read length until ':'
        colon = self._find(b':', "string length")
        length_bytes = self.data[self.i:colon]

        if not length_bytes.isdigit():
            raise BencodeDecodeError(f"Invalid string length: {length_bytes!r}")

        self.i = colon + 1
        string_bytes = self._consume(int(length_bytes))

        return BencodeString(string_bytes)

    def _parse_list(self):
        """Parses a list from the Bencoded data."""
        self._consume(1)  # skip 'l'
        items = []

        while self._peek() != b'e':
            items.append(self._parse_value())

        self._consume(1)  # skip 'e'
        return BencodeList(items)

    def _parse_dict(self):
        """Parses a dictionary from the Bencoded data."""
        self._consume(1)  # skip 'd'
        obj = {}

        while self._peek() != b'e':
            # keys MUST be strings
            if not self._peek().isdigit():
                raise BencodeDecodeError(f"Dictionary key at index {self.i} is not a byte string")
            key = self._parse_string().value
            if self._peek() == b'e':
                raise BencodeDecodeError(f"Dictionary key {key!r} has no value")
            if key in obj:
                raise BencodeDecodeError(f"Duplicate dictionary key {key!r}")
            obj[key] = self._parse_value()

        self._consume(1)  # skip 'e'
        return BencodeDict(obj)


def decode_with_length(data: bytes) -> Tuple[BencodeType, int]:
    """
    Decodes the first Bencoded value in data.
    Returns (value, bytes_consumed).
    """
    return BencodeDecoder(data).decode()


def decode(data: bytes) -> BencodeType:
    """
    Convenience function to decode Bencoded data.
    Bytes after the first complete value are ignored.
    """
    value, _ = decode_with_length(data)
    return value
