"""Shared fixtures: synthetic torrents and a fake seeding peer."""
import asyncio
import hashlib
import struct

import aiohttp
import pytest

from bencode import encode
from peer.message_types import BlockRequest, MessageID, PeerMessage
from peer.peer_protocol import HANDSHAKE_LEN, build_handshake, build_message
from torrent.metainfo import TorrentMeta


def build_torrent(payload: bytes, piece_length: int, announce="http://tracker.test/announce", name="file.bin"):
    pieces = b"".join(
        hashlib.sha1(payload[i:i + piece_length]).digest()
        for i in range(0, len(payload), piece_length)
    )
    return {
        "announce": announce,
        "info": {
            "length": len(payload),
            "name": name,
            "piece length": piece_length,
            "pieces": pieces,
        },
    }


@pytest.fixture
def payload():
    # 2.5 pieces of 32 KiB, non-repeating content
    return bytes((i * 7 + i // 251) % 256 for i in range(80 * 1024))


@pytest.fixture
def torrent_dict(payload):
    return build_torrent(payload, piece_length=32 * 1024)


@pytest.fixture
def torrent_bytes(torrent_dict):
    return encode(torrent_dict)


@pytest.fixture
def meta(torrent_bytes):
    return TorrentMeta.from_bytes(torrent_bytes)


class FakeSeeder:
    """
    In-process peer on 127.0.0.1 that serves the pieces it is given.

    It answers the handshake, sends some chatter (have, keep-alive) before its
    bitfield, unchokes on interested, then waits until the requests cover the
    whole piece before answering them in reverse order.
    """

    def __init__(self, pieces, info_hash, peer_id=b"-FS0001-000000000000"):
        self.pieces = pieces  # index -> bytes
        self.info_hash = info_hash
        self.peer_id = peer_id
        self.received = []
        self.handshake = None
        self.short_handshake = False
        self.index_offset = 0
        self.corrupt = False
        self.server = None
        self.address = None

    async def __aenter__(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.address = self.server.sockets[0].getsockname()[:2]
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.server.close()
        await self.server.wait_closed()

    @staticmethod
    async def _read_msg(reader):
        header = await reader.readexactly(4)
        body = await reader.readexactly(struct.unpack(">I", header)[0])
        return PeerMessage(body[0], body[1:])

    async def _handle(self, reader, writer):
        try:
            self.handshake = await reader.readexactly(HANDSHAKE_LEN)
            reply = build_handshake(self.info_hash, self.peer_id)
            if self.short_handshake:
                writer.write(reply[:30])
                return

            writer.write(reply)
            writer.write(build_message(MessageID.HAVE, struct.pack(">I", 0)))
            writer.write(b"\x00\x00\x00\x00")
            writer.write(build_message(MessageID.BITFIELD, b"\xff"))
            await writer.drain()

            msg = await self._read_msg(reader)
            self.received.append(msg)
            writer.write(build_message(MessageID.UNCHOKE))
            await writer.drain()

            requests = []
            while True:
                msg = await self._read_msg(reader)
                self.received.append(msg)
                requests.append(BlockRequest.unpack(msg.payload))
                piece = self.pieces[requests[0].index]
                if sum(r.length for r in requests) >= len(piece):
                    break

            for request in reversed(requests):
                block = bytearray(piece[request.begin:request.begin + request.length])
                if self.corrupt and request.begin == 0:
                    block[-1] ^= 0xFF
                payload = struct.pack(">II", request.index + self.index_offset, request.begin) + bytes(block)
                writer.write(build_message(MessageID.HAVE, struct.pack(">I", 1)))
                writer.write(build_message(MessageID.PIECE, payload))
            await writer.drain()

            # Hold the connection until the client hangs up
            await reader.read()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()


@pytest.fixture
def make_seeder(meta, payload):
    def factory(**overrides):
        pieces = {i: payload[i * meta.piece_length:i * meta.piece_length + meta.piece_size(i)]
                  for i in range(meta.num_pieces)}
        seeder = FakeSeeder(pieces, meta.info_hash)
        for key, value in overrides.items():
            setattr(seeder, key, value)
        return seeder
    return factory


class FakeResp:
    def __init__(self, body, status=200):
        self.body = body
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc, val, tb):
        pass

    async def read(self):
        return self.body


class FakeSession:
    """Replaces aiohttp.ClientSession; records every GET url."""

    def __init__(self, body, status=200):
        self.body = body
        self.status = status
        self.urls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc, val, tb):
        pass

    def get(self, url, **kwargs):
        self.urls.append(url)
        return FakeResp(self.body, self.status)


@pytest.fixture
def fake_tracker(monkeypatch):
    def install(body, status=200):
        session = FakeSession(body, status)
        monkeypatch.setattr(aiohttp, "ClientSession", lambda: session)
        return session
    return install
