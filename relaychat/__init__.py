# Encrypted message relay

from relaychat.client.client import PeerClient
from relaychat.common.crypto import (
    PassthroughCryptoProvider,
    RsaCryptoProvider,
    create_crypto_provider,
)
from relaychat.server.core import RelayListener

__all__ = [
    "PassthroughCryptoProvider",
    "PeerClient",
    "RelayListener",
    "RsaCryptoProvider",
    "create_crypto_provider",
]
