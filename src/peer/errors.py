"""
Exceptions raised while talking to a remote peer.
"""


class PeerError(Exception):
    """Base class for peer wire protocol errors."""
    pass


class HandshakeError(PeerError):
    """The 68-byte handshake could not be sent or read in full."""
    pass


class PeerConnectionError(PeerError, ConnectionError):
    """Reading from or writing to the peer socket failed."""
    pass


class ConnectionClosedError(PeerConnectionError):
    """The peer closed the stream in the middle of a message."""
    pass


class ProtocolViolationError(PeerError):
    """The peer sent something that contradicts what was requested."""
    pass
