"""
Relay listener: accept loop and per-connection handler threads.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Any

from relaychat.common.config import Config
from relaychat.common.crypto import create_crypto_provider
from relaychat.common.entities import KeyPair
from relaychat.common.exceptions import TransportError
from relaychat.common.interfaces import ICryptoProvider
from relaychat.common.mixins import Configurable
from relaychat.common.transport import LineTransport

from .broadcaster import Broadcaster
from .session import Session
from .session_manager import SessionRegistry

logger = logging.getLogger(__name__)

ACCEPT_RETRY_DELAY = 0.5  # Seconds to wait after a failed accept()


class RelayListener(Configurable):
    """Accepts peers and spawns one handler thread per connection.

    Args:
        crypto_provider: Cipher used on every hop, built from config when omitted
        key_pair: Relay key pair, generated by the provider when omitted
        registry: Shared session registry
        config: Defaults for the keyword overrides
        **overrides: ``server_host``, ``server_port``, ``listen_backlog``,
            ``max_line_length``
    """

    def __init__(
        self,
        crypto_provider: ICryptoProvider | None = None,
        key_pair: KeyPair | None = None,
        registry: SessionRegistry | None = None,
        config: Config | None = None,
        **overrides: Any,
    ):
        self.config = config or Config()
        self.apply_overrides(
            overrides,
            self.config,
            ["server_host", "server_port", "listen_backlog", "max_line_length"],
        )
        self.crypto = crypto_provider or create_crypto_provider(
            self.config.CIPHER, self.config.RSA_KEY_SIZE, self.config.RSA_PADDING
        )
        self.key_pair = key_pair or self.crypto.generate()
        self.registry = registry if registry is not None else SessionRegistry()
        self.broadcaster = Broadcaster(self.registry, self.crypto)

        self._server_socket: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()
        self.accept_retry_delay = ACCEPT_RETRY_DELAY

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the real port when 0 was requested."""
        if self._server_socket is None:
            msg = "Relay is not bound"
            raise RuntimeError(msg)
        host, port = self._server_socket.getsockname()[:2]
        return host, port

    def bind(self) -> tuple[str, int]:
        """Open the listening socket."""
        if self._server_socket is not None:
            return self.address
        try:
            self._server_socket = socket.create_server(
                (self.server_host, self.server_port), backlog=self.listen_backlog
            )
        except OSError as err:
            msg = f"Cannot listen on {self.server_host}:{self.server_port}: {err}"
            raise TransportError(msg) from err

        logger.info("Relay listening on %s:%s", *self.address)
        return self.address

    def serve_forever(self) -> None:
        """Run the accept loop until ``stop`` is called."""
        self.bind()
        assert self._server_socket is not None
        logger.info("Waiting for peers...")

        while not self._stopping.is_set():
            try:
                conn, addr = self._server_socket.accept()
            except OSError as err:
                if self._stopping.is_set():
                    break
                logger.error("Accept failed: %s", err)
                self._stopping.wait(self.accept_retry_delay)
                continue
            self._accept(conn, addr)

        logger.info("Relay stopped")

    def _accept(self, conn: socket.socket, addr: Any) -> Session | None:
        if self._stopping.is_set():
            conn.close()
            return None

        logger.info("Accepted peer %s:%s", addr[0], addr[1])
        transport = LineTransport(conn, self.max_line_length)
        session = Session(
            transport,
            self.registry,
            self.broadcaster,
            self.crypto,
            self.key_pair,
            peer_address=addr,
        )
        self.registry.add(session)
        threading.Thread(
            target=session.run, name=f"session-{session.session_id}", daemon=True
        ).start()
        return session

    def start_in_thread(self) -> tuple[str, int]:
        """Bind, then run the accept loop in a background thread."""
        address = self.bind()
        if self._thread and self._thread.is_alive():
            logger.warning("Relay is already running in a thread")
            return address
        self._thread = threading.Thread(
            target=self.serve_forever, name="relay-accept", daemon=True
        )
        self._thread.start()
        return address

    def stop(self) -> None:
        """Stop accepting and close every session."""
        self._stopping.set()
        if self._server_socket is not None:
            try:
                # Wakes a thread blocked in accept()
                self._server_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                logger.debug("Listening socket shutdown not supported")
            self._server_socket.close()

        self.registry.close_all()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> RelayListener:
        self.start_in_thread()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
