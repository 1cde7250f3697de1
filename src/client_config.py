"""
Client settings: defaults, then environment variables, then CLI flags.
"""
import os
import random
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from peer.message_types import BLOCK_LEN

ENV_PREFIX = "MYBITTORRENT_"
ENV_FIELDS = ("peer_id", "port", "block_len", "connect_timeout", "peer_index")
PEER_ID_PREFIX = b"-MB0001-"


class ConfigurationError(ValueError):
    """A setting has an unusable value."""
    pass


def generate_peer_id() -> bytes:
    digits = "".join(random.choice("0123456789") for _ in range(20 - len(PEER_ID_PREFIX)))
    return PEER_ID_PREFIX + digits.encode()


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in exc.errors()
    )


class ClientConfig(BaseModel):
    """Validated client settings. Invalid values raise ConfigurationError."""

    peer_id: bytes = Field(default_factory=generate_peer_id, description="20-byte peer id")
    port: int = Field(6881, ge=1, le=65535, description="Port reported to the tracker")
    block_len: int = Field(BLOCK_LEN, gt=0, description="Bytes per block request")
    connect_timeout: Optional[float] = Field(None, gt=0, description="TCP connect timeout in seconds")
    peer_index: int = Field(0, ge=0, description="Which tracker peer to download from")

    model_config = {"frozen": True}

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError(_describe(exc)) from exc

    @field_validator("peer_id", mode="before")
    @classmethod
    def validate_peer_id(cls, v):
        if isinstance(v, str):
            v = v.encode()
        if isinstance(v, (bytes, bytearray)) and len(v) != 20:
            msg = f"peer_id must be 20 bytes, got {len(v)}"
            raise ValueError(msg)
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        environ = os.environ if environ is None else environ
        values = {}
        for name in ENV_FIELDS:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw:
                values[name] = raw
        return cls(**values)

    def override(self, **changes) -> "ClientConfig":
        """Copy with the given non-None fields replaced, validated again."""
        values = self.model_dump()
        values.update({k: v for k, v in changes.items() if v is not None})
        return type(self)(**values)
