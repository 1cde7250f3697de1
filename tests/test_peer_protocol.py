import struct

import pytest

from peer.errors import HandshakeError, ProtocolViolationError
from peer.message_types import BlockRequest, MessageID, PeerMessage
from peer.peer_protocol import (
    HANDSHAKE_LEN,
    build_handshake,
    build_message,
    parse_handshake,
    parse_message,
    parse_piece,
)


def test_handshake_layout():
    info_hash = b"A" * 20
    peer_id = b"B" * 20

    hs = build_handshake(info_hash, peer_id)

    assert len(hs) == HANDSHAKE_LEN == 68
    assert hs[:20] == b"\x13BitTorrent protocol"
    assert hs[20:28] == b"\x00" * 8
    assert hs[28:48] == info_hash
    assert hs[-20:] == peer_id

    assert parse_handshake(hs) == (info_hash, peer_id)


def test_handshake_rejects_bad_lengths():
    with pytest.raises(ValueError):
        build_handshake(b"A" * 19, b"B" * 20)
    with pytest.raises(HandshakeError):
        parse_handshake(b"\x13BitTorrent protocol")


def test_parse_handshake_does_not_check_protocol_name():
    raw = b"\x13" + b"X" * 19 + b"\x00" * 8 + b"I" * 20 + b"P" * 20
    assert parse_handshake(raw) == (b"I" * 20, b"P" * 20)


def test_message_framing():
    msg = build_message(MessageID.INTERESTED)
    assert msg == b"\x00\x00\x00\x01\x02"

    payload = BlockRequest(1, 16384, 16384).pack()
    msg = build_message(MessageID.REQUEST, payload)
    assert msg[:4] == struct.pack(">I", 13)
    assert msg[4] == 6
    assert msg[5:] == b"\x00\x00\x00\x01\x00\x00\x40\x00\x00\x00\x40\x00"


def test_parse_message():
    frame = build_message(MessageID.HAVE, b"\x00\x00\x00\x07")
    parsed = parse_message(frame)
    assert parsed == PeerMessage(MessageID.HAVE, b"\x00\x00\x00\x07")
    assert parsed.name == "have"


@pytest.mark.parametrize("frame", [
    b"\x00\x00\x00\x00",                              # keep-alive has no id
    build_message(MessageID.PIECE, b"x" * 10)[:-1],   # body shorter than prefix
    build_message(MessageID.HAVE) + b"extra",         # body longer than prefix
    b"\x00\x00",
])
def test_parse_message_rejects_mismatched_frames(frame):
    with pytest.raises(ProtocolViolationError):
        parse_message(frame)


def test_unknown_message_id_is_kept():
    parsed = parse_message(build_message(20, b"ext"))
    assert parsed.msg_id == 20
    assert parsed.name == "unknown(20)"


def test_block_request_pack_unpack():
    request = BlockRequest(3, 32768, 1000)
    assert BlockRequest.unpack(request.pack()) == request


def test_parse_piece():
    payload = struct.pack(">II", 2, 16384) + b"data"
    assert parse_piece(payload) == (2, 16384, b"data")

    with pytest.raises(ProtocolViolationError):
        parse_piece(b"\x00\x00\x00")
