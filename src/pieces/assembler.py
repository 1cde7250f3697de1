import hashlib
import logging

logger = logging.getLogger(__name__)


class IntegrityCheckError(ValueError):
    """An assembled piece is incomplete or its SHA-1 does not match."""
    pass


class PieceAssembler:
    """
    Fixed-size buffer for one piece.

    Blocks are copied in at their begin offset in whatever order they arrive.
    The buffer is only handed out by verify(), after every byte has been
    written and the digest matches.
    """

    def __init__(self, index: int, length: int, expected_hash: bytes):
        if len(expected_hash) != 20:
            raise ValueError("expected_hash must be a raw 20-byte SHA-1 digest")
        self.index = index
        self.length = length
        self.expected_hash = expected_hash
        self.buffer = bytearray(length)
        # offset -> block length
        self.blocks = {}

    # -------------------------------------------------------
    # Store incoming block
    # -------------------------------------------------------
    def add_block(self, begin: int, block: bytes):
        end = begin + len(block)
        if begin < 0 or end > self.length:
            raise ValueError(
                f"Block [{begin}, {end}) falls outside piece {self.index} of length {self.length}"
            )
        self.buffer[begin:end] = block
        self.blocks[begin] = len(block)

    # -------------------------------------------------------
    # Check completeness
    # -------------------------------------------------------
    def missing_ranges(self):
        """Byte ranges not covered by any received block."""
        missing = []
        covered_to = 0
        for begin in sorted(self.blocks):
            if begin > covered_to:
                missing.append((covered_to, begin))
            covered_to = max(covered_to, begin + self.blocks[begin])
        if covered_to < self.length:
            missing.append((covered_to, self.length))
        return missing

    def is_complete(self) -> bool:
        return not self.missing_ranges()

    # -------------------------------------------------------
    # Verify hash
    # -------------------------------------------------------
    def verify(self) -> bytes:
        missing = self.missing_ranges()
        if missing:
            raise IntegrityCheckError(f"Piece {self.index} is missing byte ranges {missing}")

        actual = hashlib.sha1(self.buffer).digest()
        if actual != self.expected_hash:
            raise IntegrityCheckError(
                f"Piece {self.index} failed hash check: expected {self.expected_hash.hex()}, got {actual.hex()}"
            )

        logger.info("[Assembler] Piece %d verified (%d bytes)", self.index, self.length)
        return bytes(self.buffer)
