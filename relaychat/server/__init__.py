"""
Entry point for the relay server.
"""

from __future__ import annotations

import logging
from typing import Any

from relaychat.common.config import Config
from relaychat.common.entities import KeyPair
from relaychat.common.interfaces import ICryptoProvider

from .broadcaster import Broadcaster
from .core import RelayListener
from .session import Session
from .session_manager import SessionRegistry

logger = logging.getLogger(__name__)

__all__ = ["Broadcaster", "RelayListener", "Session", "SessionRegistry", "start_server"]


def start_server(
    config: Config | None = None,
    crypto_provider: ICryptoProvider | None = None,
    key_pair: KeyPair | None = None,
    **overrides: Any,
) -> None:
    """Run the relay until interrupted."""
    if config is None:
        config = Config()
    server = RelayListener(
        crypto_provider=crypto_provider, key_pair=key_pair, config=config, **overrides
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.stop()
