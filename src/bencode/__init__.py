"""
Bencode package for encoding and decoding BitTorrent data.
"""
from .decoder import decode, decode_with_length
from .encoder import encode
from .errors import BencodeDecodeError, BencodeEncodeError, BencodeError
from .structure import BencodeDict, BencodeInt, BencodeList, BencodeString, BencodeType

__all__ = [
    'decode',
    'decode_with_length',
    'encode',
    'BencodeType',
    'BencodeInt',
    'BencodeString',
    'BencodeList',
    'BencodeDict',
    'BencodeError',
    'BencodeDecodeError',
    'BencodeEncodeError',
]
