"""
Torrent metainfo parsing.
"""
from .metainfo import InvalidPieceTableError, MissingFieldError, TorrentError, TorrentMeta

__all__ = ['TorrentMeta', 'TorrentError', 'MissingFieldError', 'InvalidPieceTableError']
