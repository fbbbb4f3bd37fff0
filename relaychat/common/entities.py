"""Core entities shared by the relay and the peer client.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class KeyPair:
    """Asymmetric key pair owned by one party for the lifetime of the process."""

    public_key: Any
    private_key: Any


class SessionState(enum.Enum):
    """Lifecycle of a relay-side session."""

    HANDSHAKING = "handshaking"
    KEY_EXCHANGED = "key_exchanged"
    RELAYING = "relaying"
    CLOSED = "closed"


class ClientState(enum.Enum):
    """Lifecycle of a peer client connection."""

    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    READY = "ready"
    CLOSED = "closed"
