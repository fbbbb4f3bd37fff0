import logging
import socket
import time
from typing import Callable

import pytest

from relaychat.common.crypto import RsaCryptoProvider
from relaychat.common.entities import KeyPair
from relaychat.common.transport import LineTransport
from relaychat.server.broadcaster import Broadcaster
from relaychat.server.session import Session
from relaychat.server.session_manager import SessionRegistry


class FarEnd:
    """The peer side of a socketpair, driven by the test."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.sock.settimeout(5)
        self.reader = sock.makefile("rb")

    def send_line(self, text: str) -> None:
        self.sock.sendall(text.encode("utf-8") + b"\n")

    def read_line(self) -> str | None:
        raw = self.reader.readline()
        if not raw:
            return None
        return raw.decode("utf-8").rstrip("\n")

    def close(self) -> None:
        self.reader.close()
        self.sock.close()


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture(scope="session")
def rsa_provider() -> RsaCryptoProvider:
    return RsaCryptoProvider(key_size=2048)


@pytest.fixture(scope="session")
def key_pool(rsa_provider: RsaCryptoProvider) -> list[KeyPair]:
    """Key pairs generated once per test run."""
    return [rsa_provider.generate() for _ in range(4)]


@pytest.fixture
def relay_keys(key_pool: list[KeyPair]) -> KeyPair:
    return key_pool[0]


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def session_factory(rsa_provider, relay_keys, registry):
    """Build relay sessions over socketpairs; yields (session, far_end)."""
    created: list[tuple[Session, FarEnd]] = []

    def factory(broadcaster: Broadcaster | None = None) -> tuple[Session, FarEnd]:
        relay_end, peer_end = socket.socketpair()
        session = Session(
            LineTransport(relay_end),
            registry,
            broadcaster or Broadcaster(registry, rsa_provider),
            rsa_provider,
            relay_keys,
            peer_address="socketpair",
        )
        registry.add(session)
        far_end = FarEnd(peer_end)
        created.append((session, far_end))
        return session, far_end

    yield factory

    for session, far_end in created:
        session.close()
        far_end.close()


@pytest.fixture
def reset_relaychat_logger():
    """Drop handlers the CLI attaches to the package logger."""
    yield
    logging.getLogger("relaychat").handlers.clear()
