"""
Exceptions raised by the bencode codec.
"""


class BencodeError(ValueError):
    """Base class for bencode codec errors."""
    pass


class BencodeDecodeError(BencodeError):
    """Raised when the input is not well-formed bencode."""
    pass


class BencodeEncodeError(BencodeError, TypeError):
    """Raised when asked to encode a value that has no bencode form."""
    pass
