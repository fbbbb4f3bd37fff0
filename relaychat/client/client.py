"""
Peer client for the relay.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Any, Callable

from relaychat.common.config import Config
from relaychat.common.crypto import create_crypto_provider
from relaychat.common.entities import ClientState, KeyPair
from relaychat.common.exceptions import (
    CryptoError,
    HandshakeError,
    MessageError,
    NotReadyError,
    RelayChatError,
    TransportError,
)
from relaychat.common.interfaces import ICryptoProvider
from relaychat.common.mixins import Configurable
from relaychat.common.transport import LineTransport

logger = logging.getLogger(__name__)


def log_message(message: str) -> None:
    logger.info("[Received] %s", message)


class PeerClient(Configurable):
    """Client side of the relay protocol.

    ``connect`` runs CONNECTING -> HANDSHAKING -> READY and starts the receive
    thread, which hands each decrypted message to ``on_message``. ``send`` may be
    called from any thread once READY. ``close`` is idempotent and safe from the
    receive thread, the sending thread or anywhere else.

    Args:
        crypto_provider: Cipher, built from config when omitted
        key_pair: Own key pair, generated by the provider when omitted
        on_message: Observer for decrypted incoming messages
        on_error_callback: Called with the error when the receive path fails
        config: Defaults for the keyword overrides
        **overrides: ``server_host``, ``server_port``, ``connect_timeout``,
            ``max_line_length``, ``exit_command``
    """

    def __init__(
        self,
        crypto_provider: ICryptoProvider | None = None,
        key_pair: KeyPair | None = None,
        on_message: Callable[[str], None] | None = None,
        on_error_callback: Callable[[Exception], None] | None = None,
        config: Config | None = None,
        **overrides: Any,
    ):
        self.config = config or Config()
        self.apply_overrides(
            overrides,
            self.config,
            [
                "server_host",
                "server_port",
                "connect_timeout",
                "max_line_length",
                "exit_command",
            ],
        )
        self.crypto = crypto_provider or create_crypto_provider(
            self.config.CIPHER, self.config.RSA_KEY_SIZE, self.config.RSA_PADDING
        )
        self.key_pair = key_pair or self.crypto.generate()
        self.on_message = on_message or log_message
        self.on_error_callback = on_error_callback

        self.relay_public_key: Any = None
        self._transport: LineTransport | None = None
        self._receiver: threading.Thread | None = None
        self._state = ClientState.CONNECTING
        self._state_lock = threading.Lock()
        self._closed = threading.Event()

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ClientState.READY

    def _transition(self, new_state: ClientState) -> bool:
        with self._state_lock:
            if self._state is ClientState.CLOSED:
                return False
            self._state = new_state
            return True

    def connect(self) -> None:
        """Connect, exchange keys and start receiving."""
        if self._state is not ClientState.CONNECTING or self._transport is not None:
            msg = f"Cannot connect from state {self._state.value}"
            raise RelayChatError(msg)

        logger.info("Connecting to %s:%s", self.server_host, self.server_port)
        try:
            sock = socket.create_connection(
                (self.server_host, self.server_port), timeout=self.connect_timeout
            )
        except OSError as err:
            self.close()
            msg = f"Cannot connect to {self.server_host}:{self.server_port}: {err}"
            raise TransportError(msg) from err

        self._transport = LineTransport(sock, self.max_line_length)
        self._transition(ClientState.HANDSHAKING)
        try:
            self._handshake()
        except (HandshakeError, TransportError) as err:
            self.close()
            if isinstance(err, HandshakeError):
                raise
            msg = f"Key exchange failed: {err}"
            raise HandshakeError(msg) from err

        # No read timeout once the channel is up
        sock.settimeout(None)
        if not self._transition(ClientState.READY):
            msg = "Connection closed during key exchange"
            raise HandshakeError(msg)
        logger.info("Key exchange complete")

        self._receiver = threading.Thread(
            target=self._receive_loop, name="peer-receive", daemon=True
        )
        self._receiver.start()

    def _handshake(self) -> None:
        assert self._transport is not None
        self._transport.write_line(
            self.crypto.serialize_public_key(self.key_pair.public_key)
        )
        try:
            blob = self._transport.read_line()
        except TransportError as err:
            if isinstance(err.__cause__, socket.timeout):
                msg = "Relay did not send its public key in time"
                raise HandshakeError(msg) from err
            raise
        if blob is None:
            msg = "Relay closed the connection during key exchange"
            raise HandshakeError(msg)
        self.relay_public_key = self.crypto.deserialize_public_key(blob)

    def _receive_loop(self) -> None:
        assert self._transport is not None
        try:
            while True:
                line = self._transport.read_line()
                if line is None:
                    logger.info("Disconnected from relay")
                    return
                if not line:
                    continue

                try:
                    plaintext = self.crypto.decrypt(line, self.key_pair.private_key)
                except CryptoError as e:
                    logger.warning("Decryption failed: %s", e)
                    continue

                try:
                    self.on_message(plaintext)
                except Exception:
                    logger.exception("Message handler failed")
        except TransportError as e:
            logger.error("Connection to relay lost: %s", e)
            if self.on_error_callback:
                self.on_error_callback(e)
        except Exception as e:
            logger.exception("Receive loop failed")
            if self.on_error_callback:
                self.on_error_callback(e)
        finally:
            self.close()

    def is_exit_command(self, message: str) -> bool:
        return message.strip().lower() == self.exit_command.lower()

    def send(self, message: str) -> bool:
        """Encrypt message for the relay and send it.

        Returns False when the message was the exit command and the connection
        was closed instead.
        """
        if self.is_exit_command(message):
            logger.info("Exit requested, closing connection")
            self.close()
            return False

        if self.relay_public_key is None:
            msg = "Cannot send messages: relay public key is missing"
            raise NotReadyError(msg)
        if self._state is ClientState.CLOSED or self._transport is None:
            msg = "Connection is closed"
            raise TransportError(msg)
        if "\n" in message or "\r" in message:
            msg = "Messages must not contain line breaks"
            raise MessageError(msg)

        line = self.crypto.encrypt(message, self.relay_public_key)
        try:
            self._transport.write_line(line)
        except TransportError:
            self.close()
            raise
        return True

    def close(self) -> None:
        """Close the connection. Later calls are no-ops."""
        with self._state_lock:
            if self._state is ClientState.CLOSED:
                return
            self._state = ClientState.CLOSED

        if self._transport is not None:
            self._transport.close()
        self._closed.set()
        logger.debug("Client closed")

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the connection is closed."""
        return self._closed.wait(timeout)

    def __enter__(self) -> PeerClient:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
