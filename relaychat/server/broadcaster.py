"""
Fan-out of relayed messages, re-encrypted per recipient.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from relaychat.common.exceptions import CryptoError, MessageError, TransportError

if TYPE_CHECKING:
    from relaychat.common.interfaces import ICryptoProvider, ISessionRegistry

    from .session import Session

logger = logging.getLogger(__name__)


class Broadcaster:
    """Delivers a plaintext to every registered session except its origin."""

    def __init__(self, registry: ISessionRegistry, crypto_provider: ICryptoProvider):
        self.registry = registry
        self.crypto = crypto_provider

    def broadcast(self, plaintext: str, origin: Session | None) -> int:
        """Re-encrypt and send plaintext to every other session.

        Returns the number of sessions the message was written to.
        """
        delivered = 0

        def deliver(session: Session) -> None:
            nonlocal delivered
            if session is origin:
                return
            if session.remote_public_key is None:
                logger.debug("Skipping session %s, handshake not finished", session.session_id)
                return

            try:
                line = self.crypto.encrypt(plaintext, session.remote_public_key)
            except CryptoError as e:
                logger.warning("Could not encrypt for session %s: %s", session.session_id, e)
                return

            try:
                session.send_line(line)
            except MessageError as e:
                logger.warning("Unframeable message for session %s: %s", session.session_id, e)
                return
            except TransportError as e:
                logger.warning("Failed to send to session %s: %s", session.session_id, e)
                session.close()
                return
            delivered += 1

        self.registry.for_each(deliver)
        logger.debug(
            "Relayed message from %s to %d session(s)",
            origin.session_id if origin is not None else "relay",
            delivered,
        )
        return delivered
