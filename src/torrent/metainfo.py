import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from bencode import BencodeDict, BencodeInt, BencodeString, decode, encode

PIECE_HASH_LEN = 20


class TorrentError(ValueError):
    """Base class for torrent metainfo errors."""
    pass


class MissingFieldError(TorrentError):
    """A required metainfo key is absent or has the wrong kind."""
    pass


class InvalidPieceTableError(TorrentError):
    """The 'pieces' table does not describe 'length' bytes in 'piece length' pieces."""
    pass


def _require(mapping: BencodeDict, key: bytes, kind, where: str):
    value = mapping.get(key)
    if value is None:
        raise MissingFieldError(f"Torrent missing '{key.decode()}' in {where}")
    if not isinstance(value, kind):
        raise MissingFieldError(
            f"Torrent field '{key.decode()}' in {where} must be {kind.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


def _text(value: BencodeString, key: bytes, where: str) -> str:
    try:
        return value.value.decode()
    except UnicodeDecodeError as exc:
        raise MissingFieldError(f"Torrent field '{key.decode()}' in {where} is not valid UTF-8") from exc


@dataclass(frozen=True)
class TorrentMeta:
    """Read-only view of a single-file torrent's metainfo."""
    announce: str
    name: Optional[str]
    total_length: int
    piece_length: int
    pieces: bytes      # concatenated 20-byte SHA-1 digests
    info_hash: bytes   # SHA-1 of the canonical bencoding of 'info'

    @classmethod
    def from_dict(cls, root) -> "TorrentMeta":
        if not isinstance(root, BencodeDict):
            raise MissingFieldError("Invalid torrent: root must be a dictionary")

        # ------------------ ANNOUNCE URL ------------------
        announce = _text(_require(root, b"announce", BencodeString, "root"), b"announce", "root")

        # ------------------ INFO ------------------
        info = _require(root, b"info", BencodeDict, "root")

        # The info-hash is the torrent's identity towards trackers and peers.
        info_hash = hashlib.sha1(encode(info)).digest()

        length = _require(info, b"length", BencodeInt, "info").value
        piece_length = _require(info, b"piece length", BencodeInt, "info").value
        pieces = _require(info, b"pieces", BencodeString, "info").value

        if piece_length <= 0:
            raise InvalidPieceTableError(f"Piece length must be positive, got {piece_length}")
        if len(pieces) % PIECE_HASH_LEN:
            raise InvalidPieceTableError(
                f"'pieces' length {len(pieces)} is not a multiple of {PIECE_HASH_LEN}"
            )
        if length < 0:
            raise InvalidPieceTableError(f"Length must not be negative, got {length}")
        expected = -(-length // piece_length)
        if len(pieces) // PIECE_HASH_LEN != expected:
            raise InvalidPieceTableError(
                f"{len(pieces) // PIECE_HASH_LEN} piece hashes for {length} bytes in pieces of {piece_length}, "
                f"expected {expected}"
            )

        name_b = info.get(b"name")
        name = _text(name_b, b"name", "info") if isinstance(name_b, BencodeString) else None

        return cls(
            announce=announce,
            name=name,
            total_length=length,
            piece_length=piece_length,
            pieces=pieces,
            info_hash=info_hash,
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> "TorrentMeta":
        return cls.from_dict(decode(raw))

    @classmethod
    def from_file(cls, path) -> "TorrentMeta":
        return cls.from_bytes(Path(path).read_bytes())

    # ------------------ PIECES ------------------

    @property
    def piece_hashes(self) -> List[bytes]:
        return [self.pieces[i:i + PIECE_HASH_LEN] for i in range(0, len(self.pieces), PIECE_HASH_LEN)]

    @property
    def num_pieces(self) -> int:
        return len(self.pieces) // PIECE_HASH_LEN

    def _check_index(self, index: int):
        if not 0 <= index < self.num_pieces:
            raise IndexError(f"Piece index {index} out of range (0..{self.num_pieces - 1})")

    def piece_hash(self, index: int) -> bytes:
        """Raw 20-byte SHA-1 digest expected for piece index."""
        self._check_index(index)
        start = index * PIECE_HASH_LEN
        return self.pieces[start:start + PIECE_HASH_LEN]

    def piece_size(self, index: int) -> int:
        """Length of piece index; only the last piece can be shorter."""
        self._check_index(index)
        if index < self.num_pieces - 1:
            return self.piece_length
        return self.total_length - self.piece_length * (self.num_pieces - 1)

    def __repr__(self):
        return (
            f"TorrentMeta(name={self.name!r}, length={self.total_length}, "
            f"pieces={self.num_pieces}, announce={self.announce!r})"
        )
