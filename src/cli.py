"""
Command-line front end: decode, info, peers, handshake, download_piece.
"""
import argparse
import asyncio
import json
import logging
import sys

from bencode import decode
from client_config import ClientConfig
from peer.errors import PeerError
from session_manager import SessionManager
from torrent.metainfo import TorrentMeta
from tracker.http_tracker import TrackerError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def to_json_compatible(obj):
    """Byte-strings become text so decoded values can go through json.dumps."""
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, list):
        return [to_json_compatible(item) for item in obj]
    if isinstance(obj, dict):
        return {to_json_compatible(k): to_json_compatible(v) for k, v in obj.items()}
    return obj


def parse_peer_address(text: str):
    host, sep, port = text.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Peer address must look like ip:port, got {text!r}")
    return host, int(port)


# -------------------------------------------------------
# Commands
# -------------------------------------------------------

def cmd_decode(args, config):
    value = decode(args.value.encode())
    print(json.dumps(to_json_compatible(value.to_python()), sort_keys=True))


def cmd_info(args, config):
    meta = TorrentMeta.from_file(args.torrent)
    print(f"Tracker URL: {meta.announce}")
    print(f"Length: {meta.total_length}")
    print(f"Info Hash: {meta.info_hash.hex()}")
    print(f"Piece Length: {meta.piece_length}")
    print("Piece Hashes:")
    for piece_hash in meta.piece_hashes:
        print(piece_hash.hex())


def cmd_peers(args, config):
    meta = TorrentMeta.from_file(args.torrent)
    peers = asyncio.run(SessionManager(meta, config).discover_peers())
    for ip, port in peers:
        print(f"{ip}:{port}")


def cmd_handshake(args, config):
    meta = TorrentMeta.from_file(args.torrent)
    ip, port = parse_peer_address(args.peer)
    remote_peer_id = asyncio.run(SessionManager(meta, config).handshake(ip, port))
    print(f"Peer ID: {remote_peer_id.hex()}")


def cmd_download_piece(args, config):
    meta = TorrentMeta.from_file(args.torrent)
    peer = parse_peer_address(args.peer) if args.peer else None
    session = SessionManager(meta, config)
    asyncio.run(session.download_piece(args.index, args.output, peer=peer))
    print(f"Piece {args.index} downloaded to {args.output}.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mybittorrent", description="Minimal BitTorrent client")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--port", type=int, help="Port announced to the tracker (default: 6881)")
    parser.add_argument("--peer-id", help="20-character peer id (default: random)")
    parser.add_argument("--connect-timeout", type=float, help="Seconds to wait for a TCP connect")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("decode", help="Decode a bencoded value and print it as JSON")
    p.add_argument("value")
    p.set_defaults(func=cmd_decode)

    p = sub.add_parser("info", help="Show torrent metainfo")
    p.add_argument("torrent")
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("peers", help="Ask the tracker for peers")
    p.add_argument("torrent")
    p.set_defaults(func=cmd_peers)

    p = sub.add_parser("handshake", help="Handshake with a peer and print its id")
    p.add_argument("torrent")
    p.add_argument("peer", help="ip:port")
    p.set_defaults(func=cmd_handshake)

    p = sub.add_parser("download_piece", help="Download and verify one piece")
    p.add_argument("-o", "--output", required=True, help="Where to write the piece")
    p.add_argument("--peer", help="ip:port to use instead of asking the tracker")
    p.add_argument("torrent")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_download_piece)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = ClientConfig.from_env().override(
            port=args.port,
            peer_id=args.peer_id,
            connect_timeout=args.connect_timeout,
        )
        args.func(args, config)
    except (ValueError, IndexError, OSError, PeerError, TrackerError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
