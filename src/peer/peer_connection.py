import asyncio
import logging
from typing import Callable, Optional

from .errors import ConnectionClosedError, HandshakeError, PeerConnectionError
from .message_types import MessageID, PeerMessage
from .peer_protocol import (
    HANDSHAKE_LEN,
    LENGTH_PREFIX_LEN,
    build_handshake,
    build_message,
    parse_handshake,
    parse_message,
    unpack_length,
)

logger = logging.getLogger(__name__)


class PeerConnection:
    """
    One TCP session with one peer.

    Reads and writes are awaited one at a time; nothing runs in the
    background. Use as ``async with PeerConnection(...) as conn`` so the
    socket is closed on every exit path.
    """

    def __init__(self, ip, port, info_hash: bytes, peer_id: bytes, connect_timeout: Optional[float] = None):
        self.reader = None
        self.writer = None
        self.ip = ip
        self.port = port
        self.info_hash = info_hash
        self.peer_id = peer_id
        self.connect_timeout = connect_timeout
        self.remote_peer_id = None
        self.closed = False

    def __repr__(self):
        return f"PeerConnection({self.ip}:{self.port})"

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def connect(self) -> bytes:
        """Open the TCP connection and perform the handshake. Returns the remote peer id."""
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.ip, self.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise HandshakeError(
                f"Could not connect to peer {self.ip}:{self.port} -> connection timed out"
            ) from exc
        except OSError as exc:
            raise HandshakeError(f"Could not connect to peer {self.ip}:{self.port} -> {exc}") from exc

        logger.debug("[Peer] Connected to %s:%s", self.ip, self.port)
        try:
            return await self.handshake()
        except BaseException:
            # __aexit__ never runs when __aenter__ fails
            await self.close()
            raise

    async def handshake(self) -> bytes:
        # ---- SEND HANDSHAKE ----
        handshake = build_handshake(self.info_hash, self.peer_id)
        try:
            self.writer.write(handshake)
            await self.writer.drain()

            # ---- READ HANDSHAKE ----
            resp = await self.reader.readexactly(HANDSHAKE_LEN)
        except asyncio.IncompleteReadError as exc:
            raise HandshakeError(
                f"Peer closed connection during handshake after {len(exc.partial)} bytes"
            ) from exc
        except OSError as exc:
            raise HandshakeError(f"Handshake with {self.ip}:{self.port} failed -> {exc}") from exc

        info_hash, remote_pid = parse_handshake(resp)
        if info_hash != self.info_hash:
            logger.warning("[Peer] %s:%s answered with info_hash %s", self.ip, self.port, info_hash.hex())

        self.remote_peer_id = remote_pid
        logger.info("[Peer] Handshake with %s:%s done, peer id %s", self.ip, self.port, remote_pid.hex())
        return remote_pid

    async def send(self, msg_id, payload=b""):
        """Frame and write one message. Failures surface immediately."""
        if self.closed or self.writer is None:
            raise PeerConnectionError(f"Connection to {self.ip}:{self.port} is not open")

        msg = build_message(msg_id, payload)
        try:
            self.writer.write(msg)
            await self.writer.drain()
        except OSError as exc:
            raise PeerConnectionError(f"Write to {self.ip}:{self.port} failed -> {exc}") from exc

        logger.debug("[Peer] -> %s (%d bytes)", PeerMessage(msg_id).name, len(payload))

    async def _read_exactly(self, n: int) -> bytes:
        try:
            return await self.reader.readexactly(n)
        except asyncio.IncompleteReadError as exc:
            raise ConnectionClosedError(
                f"Peer {self.ip}:{self.port} closed the connection ({len(exc.partial)}/{n} bytes read)"
            ) from exc
        except OSError as exc:
            raise PeerConnectionError(f"Read from {self.ip}:{self.port} failed -> {exc}") from exc

    async def read_message(self) -> PeerMessage:
        """Reads the next framed peer message, skipping keep-alives."""
        if self.reader is None:
            raise PeerConnectionError(f"Connection to {self.ip}:{self.port} is not open")

        while True:
            header = await self._read_exactly(LENGTH_PREFIX_LEN)
            length = unpack_length(header)
            if length == 0:
                logger.debug("[Peer] <- keep-alive")
                continue

            body = await self._read_exactly(length)
            msg = parse_message(header + body)
            logger.debug("[Peer] <- %s (%d bytes)", msg.name, len(msg.payload))
            return msg

    async def wait_for(self, msg_id: MessageID, on_skip: Optional[Callable[[PeerMessage], None]] = None) -> bytes:
        """
        Read messages until one with msg_id arrives and return its payload.

        Every other message is dropped, or handed to on_skip when given.
        """
        while True:
            msg = await self.read_message()
            if msg.msg_id == msg_id:
                return msg.payload

            if on_skip is not None:
                on_skip(msg)
            else:
                logger.debug("[Peer] Skipping %s while waiting for %s", msg.name, PeerMessage(msg_id).name)

    async def close(self):
        if self.closed or self.writer is None:
            self.closed = True
            return

        self.closed = True
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as exc:
            logger.debug("[Peer] Error while closing %s:%s -> %s", self.ip, self.port, exc)
