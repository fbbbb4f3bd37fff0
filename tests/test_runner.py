import io
from unittest.mock import Mock

from relaychat.client.runner import ConsoleRunner
from relaychat.common.exceptions import CryptoError, MessageError, TransportError


def make_client(send_side_effect=None) -> Mock:
    client = Mock()
    client.wait_closed.return_value = False
    client.send.side_effect = send_side_effect or (lambda message: message != "exit")
    return client


def test_runner_sends_until_exit() -> None:
    client = make_client()
    runner = ConsoleRunner(client, io.StringIO("hello\n\n   \nworld\nexit\nignored\n"))

    assert runner.run() == 2

    assert [c.args[0] for c in client.send.call_args_list] == ["hello", "world", "exit"]
    client.close.assert_called_once_with()


def test_runner_stops_at_end_of_input() -> None:
    client = make_client()
    assert ConsoleRunner(client, io.StringIO("one\r\ntwo")).run() == 2
    assert [c.args[0] for c in client.send.call_args_list] == ["one", "two"]
    client.close.assert_called_once_with()


def test_runner_skips_rejected_messages() -> None:
    """Rejected lines are reported and the loop continues."""
    results = iter([CryptoError("too long"), MessageError("newline"), True])

    def send(message):
        result = next(results)
        if isinstance(result, Exception):
            raise result
        return result

    client = make_client(send)
    assert ConsoleRunner(client, io.StringIO("a\nb\nc\n")).run() == 1
    assert client.send.call_count == 3


def test_runner_stops_on_lost_connection() -> None:
    client = make_client(TransportError("gone"))
    assert ConsoleRunner(client, io.StringIO("a\nb\n")).run() == 0
    assert client.send.call_count == 1
    client.close.assert_called_once_with()


def test_runner_stops_when_client_already_closed() -> None:
    client = make_client()
    client.wait_closed.return_value = True
    assert ConsoleRunner(client, io.StringIO("a\n")).run() == 0
    client.send.assert_not_called()
