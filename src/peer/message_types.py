"""
Message IDs, block size and the small value types exchanged with a peer.
"""
import struct
from dataclasses import dataclass
from enum import IntEnum

class MessageID(IntEnum):
    """IDs for standard BitTorrent peer protocol messages."""
    CHOKE = 0
    UNCHOKE = 1
    INTERESTED = 2
    NOT_INTERESTED = 3
    HAVE = 4
    BITFIELD = 5
    REQUEST = 6
    PIECE = 7
    CANCEL = 8

# Standard block size for piece requests
BLOCK_LEN = 16 * 1024   # 16 KB


@dataclass(frozen=True)
class PeerMessage:
    """A framed peer message. msg_id stays a plain int for ids outside MessageID."""
    msg_id: int
    payload: bytes = b""

    @property
    def name(self) -> str:
        try:
            return MessageID(self.msg_id).name.lower()
        except ValueError:
            return f"unknown({self.msg_id})"


@dataclass(frozen=True)
class BlockRequest:
    """One block of a piece: payload of a REQUEST message."""
    index: int
    begin: int
    length: int

    def pack(self) -> bytes:
        return struct.pack(">III", self.index, self.begin, self.length)

    @classmethod
    def unpack(cls, payload: bytes) -> "BlockRequest":
        return cls(*struct.unpack(">III", payload[:12]))
