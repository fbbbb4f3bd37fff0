"""
Key generator for persistent relay RSA keys.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization

from relaychat.common.config import Config
from relaychat.common.crypto import RsaCryptoProvider

logger = logging.getLogger(__name__)


class KeyGenerator:
    """Key generator for creating the relay's RSA key files."""

    def __init__(self, keys_dir: Path | None = None, key_size: int | None = None):
        config = Config()
        self.keys_dir = keys_dir or config.KEYS_DIR
        self.key_size = key_size or config.RSA_KEY_SIZE

    def generate_keys(self) -> tuple[Path, Path]:
        """Generate and save relay public/private keys."""
        logger.info("Generating %d-bit RSA relay keys...", self.key_size)

        key_pair = RsaCryptoProvider(key_size=self.key_size).generate()

        # Serialize to PEM
        private_pem = key_pair.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

        public_pem = key_pair.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        # Ensure directory exists
        private_path = self.keys_dir / "relay_private.pem"
        public_path = self.keys_dir / "relay_public.pem"
        self.keys_dir.mkdir(parents=True, exist_ok=True)

        # Save keys
        with private_path.open("wb") as f:
            f.write(private_pem)

        with public_path.open("wb") as f:
            f.write(public_pem)

        logger.info("Keys generated and saved:")
        logger.info("  Private: %s", private_path)
        logger.info("  Public: %s", public_path)
        logger.info("Keep the private key secure!")
        return private_path, public_path
