"""
Piece assembly and verification.
"""
from .assembler import IntegrityCheckError, PieceAssembler

__all__ = ['PieceAssembler', 'IntegrityCheckError']
