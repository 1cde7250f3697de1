"""
Bencode encoder for BitTorrent metainfo and tracker responses.

Dictionary keys are always emitted in byte order: the info-hash of a torrent
is the SHA-1 of this encoding, so it has to be canonical.
"""
from .errors import BencodeEncodeError
from .structure import BencodeDict, BencodeInt, BencodeList, BencodeString


def encode(obj) -> bytes:
    """Encodes a Python object or BencodeType into bencoded bytes."""

    # bool is an int subclass but has no bencode form
    if isinstance(obj, bool):
        raise BencodeEncodeError("Cannot bencode a bool")

    if isinstance(obj, (int, BencodeInt)):
        value = obj if isinstance(obj, int) else obj.value
        return encode_int(value)

    if isinstance(obj, (str, BencodeString)):
        if isinstance(obj, str):
            return encode_str(obj)
        # BencodeString wraps bytes
        return encode_bytes(obj.value)

    if isinstance(obj, (bytes, bytearray)):
        return encode_bytes(bytes(obj))

    if isinstance(obj, (list, tuple, BencodeList)):
        value = obj if isinstance(obj, (list, tuple)) else obj.value
        return encode_list(value)

    if isinstance(obj, (dict, BencodeDict)):
        value = obj if isinstance(obj, dict) else obj.value
        return encode_dict(value)

    raise BencodeEncodeError(f"Cannot bencode object of type {type(obj).__name__}")


# ------------------------------------------------------------
#   Encoding primitives
# ------------------------------------------------------------

def encode_int(n: int) -> bytes:
    """Encodes an integer to bencoded bytes (e.g., i123e)."""
    return f"i{n}e".encode()


def encode_bytes(b: bytes) -> bytes:
    """Encodes bytes to bencoded bytes (e.g., 4:spam)."""
    return str(len(b)).encode() + b":" + b


def encode_str(s: str) -> bytes:
    """Encodes a string to bencoded bytes (e.g., 4:spam)."""
    return encode_bytes(s.encode())


def encode_list(lst) -> bytes:
    """Encodes a list to bencoded bytes (e.g., l4:spame)."""
    encoded_items = b''.join(encode(x) for x in lst)
    return b"l" + encoded_items + b"e"


def _key_to_bytes(k) -> bytes:
    if isinstance(k, (bytes, bytearray)):
        return bytes(k)
    if isinstance(k, str):
        return k.encode()
    if isinstance(k, BencodeString):
        return k.value
    raise BencodeEncodeError(f"Dictionary keys must be strings, not {type(k).__name__}")


def encode_dict(d: dict) -> bytes:
    """Encodes a dictionary to bencoded bytes (e.g., d3:cow3:moo4:spam4:eggse)."""
    items = sorted(((_key_to_bytes(k), v) for k, v in d.items()), key=lambda kv: kv[0])
    for (key, _), (next_key, _) in zip(items, items[1:]):
        if key == next_key:
            raise BencodeEncodeError(f"Duplicate dictionary key {key!r}")

    parts = [b"d"]
    for key_bytes, value in items:
        parts.append(encode_bytes(key_bytes))
        parts.append(encode(value))
    parts.append(b"e")

    return b"".join(parts)
