"""
Utility functions for tracker communication.
"""
from typing import List, Tuple

COMPACT_PEER_LEN = 6


def compact_to_peers(blob: bytes) -> List[Tuple[str, int]]:
    """
    Decodes a compact peer list (6 bytes per peer: 4 for IP, 2 for port)
    into a list of (IP, port) tuples.
    """
    if len(blob) % COMPACT_PEER_LEN:
        raise ValueError(f"Compact peer list length {len(blob)} is not a multiple of {COMPACT_PEER_LEN}")

    peers = []
    for i in range(0, len(blob), COMPACT_PEER_LEN):
        ip = ".".join(str(b) for b in blob[i:i+4])
        port = int.from_bytes(blob[i+4:i+6], "big")
        peers.append((ip, port))
    return peers


def pct_encode(b: bytes) -> str:
    """Percent-encodes every byte (%HH), as trackers expect for info_hash and peer_id."""
    return ''.join(f'%{byte:02X}' for byte in b)
