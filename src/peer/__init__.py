from .errors import (
    ConnectionClosedError,
    HandshakeError,
    PeerConnectionError,
    PeerError,
    ProtocolViolationError,
)
from .message_types import BLOCK_LEN, BlockRequest, MessageID, PeerMessage
from .peer_connection import PeerConnection
from .peer_protocol import *
from .piece_downloader import PieceDownloader

__all__ = [
    "PeerConnection",
    "PieceDownloader",
    "MessageID",
    "PeerMessage",
    "BlockRequest",
    "BLOCK_LEN",
    "build_handshake",
    "parse_handshake",
    "build_message",
    "parse_message",
    "parse_piece",
    "PeerError",
    "HandshakeError",
    "PeerConnectionError",
    "ConnectionClosedError",
    "ProtocolViolationError",
]
