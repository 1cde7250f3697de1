import struct
from typing import Tuple

from .errors import HandshakeError, ProtocolViolationError
from .message_types import PeerMessage

PROTOCOL_STR = b"BitTorrent protocol"
RESERVED = b"\x00" * 8
HANDSHAKE_LEN = 1 + len(PROTOCOL_STR) + len(RESERVED) + 20 + 20  # pstrlen + pstr + reserved + info_hash + peer_id
LENGTH_PREFIX_LEN = 4

def build_handshake(info_hash: bytes, peer_id: bytes) -> bytes:
    """
    Build a handshake message.
    info_hash: 20 bytes
    peer_id:   20 bytes
    """
    if len(info_hash) != 20 or len(peer_id) != 20:
        raise ValueError("info_hash and peer_id must be 20 bytes each")

    return (
        bytes([len(PROTOCOL_STR)]) +
        PROTOCOL_STR +
        RESERVED +
        info_hash +
        peer_id
    )

def parse_handshake(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split a 68-byte handshake into (info_hash, peer_id).

    The protocol string and reserved bytes are not checked; the fields are
    taken at their fixed offsets.
    """
    if len(data) != HANDSHAKE_LEN:
        raise HandshakeError(f"Handshake must be {HANDSHAKE_LEN} bytes, got {len(data)}")

    peer_id = data[-20:]
    info_hash = data[-40:-20]
    return info_hash, peer_id

# ---- Message framing helpers ----
def build_message(msg_id: int, payload: bytes = b"") -> bytes:
    """
    Frame a message: 4-byte big-endian length + 1-byte id + payload
    length = 1 + len(payload)
    """
    length = 1 + len(payload)
    return struct.pack(">I", length) + bytes([int(msg_id)]) + payload   # ">" → big-endian
                                                                                # "I" → unsigned 4-byte integer

def unpack_length(prefix: bytes) -> int:
    return struct.unpack(">I", prefix)[0]

def parse_message(frame: bytes) -> PeerMessage:
    """
    Parse one complete, non keep-alive frame (length prefix included).
    """
    if len(frame) <= LENGTH_PREFIX_LEN:
        raise ProtocolViolationError(f"Frame too short: {len(frame)} bytes")

    length = unpack_length(frame[:LENGTH_PREFIX_LEN])
    if length != len(frame) - LENGTH_PREFIX_LEN:
        raise ProtocolViolationError(
            f"Length prefix {length} does not match frame body of {len(frame) - LENGTH_PREFIX_LEN} bytes"
        )

    return PeerMessage(frame[LENGTH_PREFIX_LEN], bytes(frame[LENGTH_PREFIX_LEN + 1:]))

# ---- Payload helpers ----
def parse_piece(payload: bytes) -> Tuple[int, int, bytes]:
    """Split a PIECE payload into (index, begin, block)."""
    if len(payload) < 8:
        raise ProtocolViolationError(f"PIECE payload too short: {len(payload)} bytes")
    index, begin = struct.unpack(">II", payload[:8])
    return index, begin, payload[8:]
