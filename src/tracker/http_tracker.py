import logging
from typing import List, Tuple

import aiohttp

from bencode import BencodeDecodeError, BencodeDict, BencodeString, decode
from .utils import compact_to_peers, pct_encode

logger = logging.getLogger(__name__)


class TrackerError(RuntimeError):
    """The tracker could not be reached or sent an unusable response."""
    pass


class HTTPTrackerClient:
    def __init__(self, torrent_meta, peer_id: bytes, port=6881, url: str = None):
        self.meta = torrent_meta
        self.peer_id = peer_id  # MUST be 20 bytes
        self.port = port
        self.url = url if url else torrent_meta.announce

        if not self.url:
            raise ValueError("No announce URL provided for HTTPTrackerClient")
        if len(peer_id) != 20:
            raise ValueError("peer_id must be 20 bytes")

    def build_url(self) -> str:
        params = {
            "info_hash": self.meta.info_hash,
            "peer_id": self.peer_id,
            "port": self.port,
            "uploaded": 0,
            "downloaded": 0,
            "left": self.meta.total_length,
            "compact": 1,
        }

        # URL-encode binary fields
        encoded = {}
        for k, v in params.items():
            if isinstance(v, bytes):
                encoded[k] = pct_encode(v)
            else:
                encoded[k] = str(v)

        query = "&".join(f"{k}={v}" for k, v in encoded.items())
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{query}"

    async def announce(self) -> List[Tuple[str, int]]:
        full_url = self.build_url()
        logger.debug("[Tracker] Announce URL: %s", full_url)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(full_url) as resp:
                    status = resp.status
                    data = await resp.read()
        except aiohttp.ClientError as exc:
            raise TrackerError(f"Tracker request to {self.url} failed -> {exc}") from exc

        if status != 200:
            raise TrackerError(f"Tracker {self.url} answered HTTP {status}")

        return self.parse_response(data)

    @staticmethod
    def parse_response(data: bytes) -> List[Tuple[str, int]]:
        try:
            root = decode(data)
        except BencodeDecodeError as exc:
            raise TrackerError(f"Tracker response is not bencoded: {exc}") from exc

        if not isinstance(root, BencodeDict):
            raise TrackerError("Tracker response must be a dictionary")

        failure = root.get(b"failure reason")
        if isinstance(failure, BencodeString):
            raise TrackerError("Tracker error: " + failure.value.decode(errors="replace"))

        peers_field = root.get(b"peers")
        if not isinstance(peers_field, BencodeString):
            raise TrackerError("Tracker returned invalid peer list")

        try:
            peers = compact_to_peers(peers_field.value)
        except ValueError as exc:
            raise TrackerError(str(exc)) from exc

        logger.info("[Tracker] Tracker returned %d peers", len(peers))
        return peers
