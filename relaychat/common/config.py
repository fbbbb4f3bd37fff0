"""
Configuration settings for the relay and the peer client.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import cast

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from relaychat.common.entities import KeyPair


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Server settings
        self.SERVER_HOST: str = os.getenv("RELAYCHAT_SERVER_HOST", "127.0.0.1")
        self.SERVER_PORT: int = int(os.getenv("RELAYCHAT_SERVER_PORT", "12345"))
        self.LISTEN_BACKLOG: int = 5

        # Connection settings
        self.CONNECT_TIMEOUT: float = 10.0  # Seconds, covers connect and handshake
        self.MAX_LINE_LENGTH: int = 64 * 1024  # Longest accepted frame, in bytes
        self.EXIT_COMMAND: str = "exit"

        # Cipher settings
        self.CIPHER: str = os.getenv("RELAYCHAT_CIPHER", "rsa")
        self.RSA_KEY_SIZE: int = int(os.getenv("RELAYCHAT_KEY_SIZE", "2048"))
        self.RSA_PADDING: str = os.getenv("RELAYCHAT_PADDING", "oaep")

        # File paths
        self.BASE_DIR: Path = Path(__file__).parent.parent
        self.KEYS_DIR: Path = Path(
            os.getenv("RELAYCHAT_KEYS_DIR", str(self.BASE_DIR / "keys"))
        )
        self.RELAY_PUBLIC_KEY_PATH: Path = self.KEYS_DIR / "relay_public.pem"
        self.RELAY_PRIVATE_KEY_PATH: Path = self.KEYS_DIR / "relay_private.pem"

        # Logging
        self.LOG_LEVEL: int = getattr(
            logging, os.getenv("RELAYCHAT_LOG_LEVEL", "INFO").upper(), logging.INFO
        )
        self.LOG_FORMAT: str = (
            "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"
        )
        self.LOG_FILE: str | None = os.getenv("RELAYCHAT_LOG_FILE")

    def set_keys_dir(self, keys_dir: Path) -> None:
        """Point the relay key paths at another directory."""
        self.KEYS_DIR = keys_dir
        self.RELAY_PUBLIC_KEY_PATH = keys_dir / "relay_public.pem"
        self.RELAY_PRIVATE_KEY_PATH = keys_dir / "relay_private.pem"

    def get_relay_keys(self) -> KeyPair:
        """Load relay keys from files."""
        try:
            with self.RELAY_PUBLIC_KEY_PATH.open("rb") as f:
                relay_pub = cast(
                    "RSAPublicKey", serialization.load_pem_public_key(f.read())
                )
            with self.RELAY_PRIVATE_KEY_PATH.open("rb") as f:
                relay_priv = cast(
                    "RSAPrivateKey",
                    serialization.load_pem_private_key(f.read(), None),
                )
        except FileNotFoundError as err:
            msg = (
                f"Relay keys not found at {self.RELAY_PUBLIC_KEY_PATH} and {self.RELAY_PRIVATE_KEY_PATH}. "
                "Run 'relaychat keygen' to generate them."
            )
            raise ValueError(msg) from err

        return KeyPair(public_key=relay_pub, private_key=relay_priv)
