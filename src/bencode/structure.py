"""
Data structures for representing Bencoded types.

Every decoded value is one of four variants. Callers dispatch on the variant
class instead of probing raw Python types.
"""
__all__ = [
    "BencodeType",
    "BencodeInt",
    "BencodeString",
    "BencodeList",
    "BencodeDict",
]


class BencodeType:
    """Base class for all Bencode data types."""
    value = None

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.value == other.value

    __hash__ = None

    def to_python(self):
        """Unwraps the value into plain Python objects (bytes, int, list, dict)."""
        raise NotImplementedError


class BencodeInt(BencodeType):
    """Represents a Bencoded integer."""
    def __init__(self, value: int):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("BencodeInt requires an integer.")
        self.value = value

    def __repr__(self):
        return f"BencodeInt({self.value})"

    def __hash__(self):
        return hash((BencodeInt, self.value))

    def to_python(self):
        return self.value


class BencodeString(BencodeType):
    """Represents a Bencoded byte string."""
    def __init__(self, value: bytes):
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError("BencodeString requires bytes.")
        self.value = bytes(value)

    def __repr__(self):
        return f"BencodeString({self.value!r})"

    def __hash__(self):
        return hash((BencodeString, self.value))

    def to_python(self):
        return self.value


class BencodeList(BencodeType):
    """Represents a Bencoded list."""
    def __init__(self, value: list):
        if not isinstance(value, list):
            raise TypeError("BencodeList requires a list.")
        self.value = value

    def __repr__(self):
        return f"BencodeList({self.value!r})"

    def to_python(self):
        return [item.to_python() for item in self.value]


class BencodeDict(BencodeType):
    """Represents a Bencoded dictionary."""
    def __init__(self, value: dict):
        if not isinstance(value, dict):
            raise TypeError("BencodeDict requires a dict.")
        # keys must be bytes (bencode requirement)
        for k in value.keys():
            if not isinstance(k, (bytes, bytearray)):
                raise TypeError("BencodeDict keys must be bytes.")
        self.value = value

    def __repr__(self):
        return f"BencodeDict({self.value!r})"

    def get(self, key: bytes, default=None):
        return self.value.get(key, default)

    def to_python(self):
        return {key: item.to_python() for key, item in self.value.items()}
