# Integration tests
import queue
import socket

import pytest

from relaychat.client.client import PeerClient
from relaychat.common.crypto import PassthroughCryptoProvider
from relaychat.common.entities import ClientState
from relaychat.common.exceptions import CryptoError, MessageError
from relaychat.server.core import RelayListener
from tests.conftest import wait_for


@pytest.fixture
def relay(rsa_provider, relay_keys):
    """Relay on an ephemeral port, accepting in a background thread."""
    listener = RelayListener(
        crypto_provider=rsa_provider,
        key_pair=relay_keys,
        server_host="127.0.0.1",
        server_port=0,
    )
    with listener:
        yield listener


@pytest.fixture
def connect_peer(relay, rsa_provider):
    """Connect peers with an inbox queue each; yields (client, inbox)."""
    clients = []

    def connect(key_pair) -> tuple[PeerClient, queue.Queue]:
        inbox: queue.Queue = queue.Queue()
        host, port = relay.address
        client = PeerClient(
            crypto_provider=rsa_provider,
            key_pair=key_pair,
            on_message=inbox.put,
            server_host=host,
            server_port=port,
        )
        client.connect()
        clients.append(client)
        return client, inbox

    yield connect
    for client in clients:
        client.close()


def test_hello_scenario(relay, connect_peer, key_pool) -> None:
    """X says hello, Y hears it, X does not hear itself."""
    x, x_inbox = connect_peer(key_pool[1])
    y, y_inbox = connect_peer(key_pool[2])
    assert wait_for(lambda: len(relay.registry) == 2)

    assert x.send("hello") is True

    assert y_inbox.get(timeout=5) == "hello"
    with pytest.raises(queue.Empty):
        x_inbox.get(timeout=0.5)


def test_fan_out_to_all_other_peers(relay, connect_peer, key_pool) -> None:
    x, x_inbox = connect_peer(key_pool[1])
    _, y_inbox = connect_peer(key_pool[2])
    _, z_inbox = connect_peer(key_pool[3])

    x.send("to everyone")

    assert y_inbox.get(timeout=5) == "to everyone"
    assert z_inbox.get(timeout=5) == "to everyone"
    assert x_inbox.empty()


def test_messages_from_one_peer_keep_their_order(relay, connect_peer, key_pool) -> None:
    x, _ = connect_peer(key_pool[1])
    _, y_inbox = connect_peer(key_pool[2])

    for i in range(5):
        x.send(f"message {i}")

    assert [y_inbox.get(timeout=5) for _ in range(5)] == [f"message {i}" for i in range(5)]


def test_invalid_key_blob_only_aborts_that_connection(relay, connect_peer, key_pool) -> None:
    """A bad handshake is dropped while other peers keep chatting."""
    x, _ = connect_peer(key_pool[1])
    _, y_inbox = connect_peer(key_pool[2])

    with socket.create_connection(relay.address, timeout=5) as rogue:
        rogue.sendall(b"this is not a public key\n")
        assert rogue.recv(1024) == b""

    x.send("still working")
    assert y_inbox.get(timeout=5) == "still working"

    _, z_inbox = connect_peer(key_pool[3])
    x.send("and accepting")
    assert z_inbox.get(timeout=5) == "and accepting"


def test_bad_frame_does_not_end_session(relay, connect_peer, rsa_provider, relay_keys, key_pool) -> None:
    """An undecryptable line is dropped, the sender's next line is relayed."""
    _, y_inbox = connect_peer(key_pool[2])

    with socket.create_connection(relay.address, timeout=5) as raw:
        reader = raw.makefile("rb")
        raw.sendall(rsa_provider.serialize_public_key(key_pool[1].public_key).encode() + b"\n")
        relay_blob = reader.readline().decode().strip()
        relay_public_key = rsa_provider.deserialize_public_key(relay_blob)
        assert relay_public_key.public_numbers() == relay_keys.public_key.public_numbers()

        raw.sendall(b"%%% garbage %%%\n")
        raw.sendall(rsa_provider.encrypt("after garbage", relay_public_key).encode() + b"\n")

        assert y_inbox.get(timeout=5) == "after garbage"
        reader.close()


def test_exit_command_disconnects_peer(relay, connect_peer, key_pool) -> None:
    x, _ = connect_peer(key_pool[1])
    y, y_inbox = connect_peer(key_pool[2])
    assert wait_for(lambda: len(relay.registry) == 2)

    assert x.send("exit") is False

    assert x.wait_closed(5)
    assert wait_for(lambda: len(relay.registry) == 1)
    y.send("anyone there?")
    with pytest.raises(queue.Empty):
        y_inbox.get(timeout=0.5)


def test_rejected_messages_keep_connection_usable(relay, connect_peer, key_pool) -> None:
    x, _ = connect_peer(key_pool[1])
    _, y_inbox = connect_peer(key_pool[2])

    with pytest.raises(CryptoError):
        x.send("x" * 500)
    with pytest.raises(MessageError):
        x.send("two\nlines")

    x.send("short")
    assert y_inbox.get(timeout=5) == "short"


def test_relay_stop_disconnects_peers(relay, connect_peer, key_pool) -> None:
    x, _ = connect_peer(key_pool[1])
    y, _ = connect_peer(key_pool[2])

    relay.stop()

    assert x.wait_closed(5)
    assert y.wait_closed(5)
    assert x.state is ClientState.CLOSED
    assert len(relay.registry) == 0


def test_passthrough_cipher_end_to_end() -> None:
    """The no-op cipher runs the same protocol."""
    provider = PassthroughCryptoProvider()
    with RelayListener(crypto_provider=provider, server_host="127.0.0.1", server_port=0) as listener:
        host, port = listener.address
        inbox: queue.Queue = queue.Queue()
        with PeerClient(crypto_provider=provider, server_host=host, server_port=port) as x, \
                PeerClient(
                    crypto_provider=provider,
                    on_message=inbox.put,
                    server_host=host,
                    server_port=port,
                ):
            x.send("plain hello")
            assert inbox.get(timeout=5) == "plain hello"


def test_passthrough_frame_with_carriage_return_is_dropped() -> None:
    """A frame the relay cannot re-frame leaves both peers connected."""
    provider = PassthroughCryptoProvider()
    with RelayListener(crypto_provider=provider, server_host="127.0.0.1", server_port=0) as listener:
        host, port = listener.address
        inbox: queue.Queue = queue.Queue()
        with PeerClient(
            crypto_provider=provider, on_message=inbox.put, server_host=host, server_port=port
        ) as y, socket.create_connection(listener.address, timeout=5) as raw:
            reader = raw.makefile("rb")
            raw.sendall(provider.generate().public_key.encode() + b"\n")
            assert reader.readline()
            assert wait_for(lambda: len(listener.registry) == 2)

            raw.sendall(b"bad\rframe\n")
            raw.sendall(b"good frame\n")

            assert inbox.get(timeout=5) == "good frame"
            assert len(listener.registry) == 2
            assert y.is_ready
            reader.close()
