"""
Console runner: feeds lines from a text stream into a connected peer client.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TextIO

from relaychat.common.exceptions import (
    CryptoError,
    MessageError,
    NotReadyError,
    TransportError,
)

if TYPE_CHECKING:
    from .client import PeerClient


class ConsoleRunner:
    """Sends each input line until the exit command, end of input, or disconnect."""

    def __init__(self, client: PeerClient, stream: TextIO):
        self.client = client
        self.stream = stream
        self.logger = logging.getLogger(__name__)

    def run(self) -> int:
        """Run the input loop. Returns the number of messages sent."""
        sent = 0
        try:
            for raw in self.stream:
                if self.client.wait_closed(0):
                    break
                message = raw.rstrip("\r\n")
                if not message.strip():
                    continue

                try:
                    if not self.client.send(message):
                        break
                except (CryptoError, MessageError, NotReadyError) as e:
                    self.logger.error("Message not sent: %s", e)
                    continue
                except TransportError as e:
                    self.logger.error("Connection lost: %s", e)
                    break
                sent += 1
        finally:
            self.client.close()
        return sent
