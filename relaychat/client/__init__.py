# Peer client
from relaychat.client.client import PeerClient as PeerClient
from relaychat.client.runner import ConsoleRunner as ConsoleRunner

__all__ = ["ConsoleRunner", "PeerClient"]
