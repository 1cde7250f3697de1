import logging
from typing import List

from pieces.assembler import PieceAssembler
from .errors import ProtocolViolationError
from .message_types import BLOCK_LEN, BlockRequest, MessageID
from .peer_protocol import parse_piece

logger = logging.getLogger(__name__)


class PieceDownloader:
    """
    Fetches a single piece from an already handshaken peer.

    Requests are not paced: every block of the piece is requested before the
    first response is read, then exactly that many PIECE messages are
    drained. The number of requests in flight grows with the piece length,
    so this is only meant for one piece at a time on one connection.
    """

    def __init__(self, peer_conn, torrent_meta, block_len=BLOCK_LEN):
        if block_len <= 0:
            raise ValueError("block_len must be positive")
        self.peer = peer_conn
        self.meta = torrent_meta
        self.block_len = block_len

    async def prepare(self):
        """bitfield -> interested -> unchoke."""
        await self.peer.wait_for(MessageID.BITFIELD)
        await self.peer.send(MessageID.INTERESTED)
        await self.peer.wait_for(MessageID.UNCHOKE)
        logger.debug("[Downloader] Unchoked by %r", self.peer)

    def plan_requests(self, idx: int) -> List[BlockRequest]:
        """Block requests tiling piece idx; the last one is cut to the remainder."""
        length = self.meta.piece_size(idx)
        requests = []
        offset = 0
        while offset < length:
            blen = min(self.block_len, length - offset)
            requests.append(BlockRequest(idx, offset, blen))
            offset += blen
        return requests

    async def download(self, idx: int) -> bytes:
        """Request, assemble and verify piece idx. Returns the verified bytes."""
        assembler = PieceAssembler(idx, self.meta.piece_size(idx), self.meta.piece_hash(idx))
        requests = self.plan_requests(idx)

        # Fire all
        for request in requests:
            await self.peer.send(MessageID.REQUEST, request.pack())
        logger.debug("[Downloader] Sent %d requests for piece %d", len(requests), idx)

        # Drain all
        for _ in requests:
            payload = await self.peer.wait_for(MessageID.PIECE)
            got_idx, begin, block = parse_piece(payload)

            if got_idx != idx:
                raise ProtocolViolationError(f"Unexpected piece index: expected {idx}, got {got_idx}")

            try:
                assembler.add_block(begin, block)
            except ValueError as exc:
                raise ProtocolViolationError(str(exc)) from exc

        piece = assembler.verify()
        logger.info("[Downloader] Completed piece %d", idx)
        return piece
