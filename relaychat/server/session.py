"""
Relay-side session: one accepted connection and its state machine.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import TYPE_CHECKING, Any

from relaychat.common.entities import KeyPair, SessionState
from relaychat.common.exceptions import (
    CryptoError,
    HandshakeError,
    KeyFormatError,
    TransportError,
)

if TYPE_CHECKING:
    from relaychat.common.interfaces import ICryptoProvider
    from relaychat.common.transport import LineTransport

    from .broadcaster import Broadcaster
    from .session_manager import SessionRegistry

logger = logging.getLogger(__name__)


class Session:
    """One connected peer on the relay.

    ``run`` is the body of the session's handler thread:
    HANDSHAKING -> KEY_EXCHANGED -> RELAYING -> CLOSED. ``close`` is the single
    teardown routine for every exit path and runs its work exactly once.
    """

    def __init__(
        self,
        transport: LineTransport,
        registry: SessionRegistry,
        broadcaster: Broadcaster,
        crypto_provider: ICryptoProvider,
        key_pair: KeyPair,
        peer_address: Any = None,
    ):
        self.transport = transport
        self.registry = registry
        self.broadcaster = broadcaster
        self.crypto = crypto_provider
        self.key_pair = key_pair
        self.peer_address = peer_address
        self.session_id = uuid.uuid4().hex[:8]

        self.remote_public_key: Any = None
        self._state = SessionState.HANDSHAKING
        self._state_lock = threading.Lock()
        self._closed = threading.Event()

    def __repr__(self) -> str:
        return f"<Session {self.session_id} {self.peer_address} {self._state.value}>"

    @property
    def state(self) -> SessionState:
        return self._state

    def _transition(self, new_state: SessionState) -> bool:
        """Move to new_state unless the session is already closed."""
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                return False
            logger.debug(
                "Session %s: %s -> %s",
                self.session_id,
                self._state.value,
                new_state.value,
            )
            self._state = new_state
            return True

    def run(self) -> None:
        """Handshake, then relay lines until the connection ends."""
        try:
            self._handshake()
            if self._transition(SessionState.KEY_EXCHANGED) and self._transition(
                SessionState.RELAYING
            ):
                logger.info("Session %s relaying for %s", self.session_id, self.peer_address)
                self._relay()
        except KeyFormatError as e:
            logger.warning("Session %s sent an invalid public key: %s", self.session_id, e)
        except HandshakeError as e:
            logger.warning("Session %s handshake failed: %s", self.session_id, e)
        except TransportError as e:
            logger.info("Session %s disconnected: %s", self.session_id, e)
        except Exception:
            logger.exception("Session %s failed", self.session_id)
        finally:
            self.close()

    def _handshake(self) -> None:
        blob = self.transport.read_line()
        if blob is None:
            msg = "Connection closed before the public key was sent"
            raise HandshakeError(msg)

        remote_public_key = self.crypto.deserialize_public_key(blob)
        self.transport.write_line(
            self.crypto.serialize_public_key(self.key_pair.public_key)
        )
        # Broadcasts may target this session only after the relay key is out
        self.remote_public_key = remote_public_key

    def _relay(self) -> None:
        while True:
            line = self.transport.read_line()
            if line is None:
                logger.info("Session %s: peer closed the connection", self.session_id)
                return
            if not line:
                continue

            try:
                plaintext = self.crypto.decrypt(line, self.key_pair.private_key)
            except CryptoError as e:
                logger.warning("Session %s: dropped undecryptable message: %s", self.session_id, e)
                continue

            logger.debug("Session %s received %d characters", self.session_id, len(plaintext))
            self.broadcaster.broadcast(plaintext, self)

    def send_line(self, line: str) -> None:
        """Deliver one already encrypted frame to this peer."""
        self.transport.write_line(line)

    def close(self) -> None:
        """Tear the session down. Later calls are no-ops."""
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CLOSED

        self.transport.close()
        if self.registry.remove(self):
            logger.info("Session %s closed", self.session_id)
        self._closed.set()

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the session is closed."""
        return self._closed.wait(timeout)
