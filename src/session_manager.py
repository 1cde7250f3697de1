import logging
from pathlib import Path
from typing import List, Optional, Tuple

from client_config import ClientConfig
from peer.peer_connection import PeerConnection
from peer.piece_downloader import PieceDownloader
from tracker.http_tracker import HTTPTrackerClient, TrackerError

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Drives one piece download against one peer:
    tracker -> connect + handshake -> prepare -> fire/drain requests -> write file.
    """

    def __init__(self, torrent_meta, config: Optional[ClientConfig] = None):
        self.meta = torrent_meta
        self.config = config if config is not None else ClientConfig()

    def _connection(self, ip, port) -> PeerConnection:
        return PeerConnection(
            ip,
            port,
            self.meta.info_hash,
            self.config.peer_id,
            connect_timeout=self.config.connect_timeout,
        )

    async def discover_peers(self) -> List[Tuple[str, int]]:
        tracker = HTTPTrackerClient(self.meta, self.config.peer_id, self.config.port)
        return await tracker.announce()

    async def pick_peer(self) -> Tuple[str, int]:
        peers = await self.discover_peers()
        if self.config.peer_index >= len(peers):
            raise TrackerError(
                f"Tracker returned {len(peers)} peers, peer index {self.config.peer_index} not available"
            )
        return peers[self.config.peer_index]

    async def handshake(self, ip, port) -> bytes:
        """Connect, handshake and disconnect. Returns the remote peer id."""
        async with self._connection(ip, port) as conn:
            return conn.remote_peer_id

    async def download_piece(self, index: int, output_path, peer: Optional[Tuple[str, int]] = None) -> Path:
        # Validates the index before any network traffic
        self.meta.piece_size(index)

        ip, port = peer if peer is not None else await self.pick_peer()
        logger.info("[Session] Downloading piece %d from %s:%s", index, ip, port)

        async with self._connection(ip, port) as conn:
            downloader = PieceDownloader(conn, self.meta, block_len=self.config.block_len)
            await downloader.prepare()
            piece = await downloader.download(index)

        return self._write_piece_to_disk(output_path, piece)

    # -------------------------------------------------------
    # Write verified piece bytes to the caller's path
    # -------------------------------------------------------
    @staticmethod
    def _write_piece_to_disk(output_path, piece_bytes: bytes) -> Path:
        out_path = Path(output_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(piece_bytes)
        logger.info("[Session] Wrote %d bytes to %s", len(piece_bytes), out_path)
        return out_path
