"""Cipher providers for the relay protocol.

Every message is encrypted directly under the long-lived public key of its
immediate recipient on the wire, so a message is bounded by the single-operation
capacity of the key (see ``max_plaintext_size``).
"""

from __future__ import annotations

import base64
import secrets
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from relaychat.common.entities import KeyPair
from relaychat.common.exceptions import CryptoError, KeyFormatError

PUBLIC_EXPONENT = 65537
MIN_KEY_SIZE = 1024
PADDING_SCHEMES = ("oaep", "pkcs1v15")
PKCS1V15_OVERHEAD = 11
PASSTHROUGH_MAX_PLAINTEXT = 64 * 1024


class CryptoUtils:
    """Utility class for wire encoding."""

    @staticmethod
    def to_text(data: bytes) -> str:
        """Encode raw bytes as a single-line base64 string."""
        return base64.b64encode(data).decode("ascii")

    @staticmethod
    def from_text(text: str) -> bytes:
        """Decode a base64 string, rejecting anything outside the alphabet."""
        return base64.b64decode(text.strip(), validate=True)


class RsaCryptoProvider:
    """RSA cipher provider.

    Args:
        key_size: Modulus size in bits for generated keys
        padding_scheme: ``"oaep"`` (OAEP with SHA-256) or ``"pkcs1v15"``, the
            padding used by Java's default ``"RSA"`` cipher
    """

    def __init__(self, key_size: int = 2048, padding_scheme: str = "oaep") -> None:
        if key_size < MIN_KEY_SIZE:
            msg = f"RSA key size must be at least {MIN_KEY_SIZE} bits"
            raise ValueError(msg)
        if padding_scheme not in PADDING_SCHEMES:
            msg = f"Unsupported padding scheme: {padding_scheme}"
            raise ValueError(msg)
        self.key_size = key_size
        self.padding_scheme = padding_scheme

    def _padding(self) -> padding.AsymmetricPadding:
        if self.padding_scheme == "oaep":
            return padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None,
            )
        return padding.PKCS1v15()

    def generate(self) -> KeyPair:
        """Generate a fresh RSA key pair."""
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT, key_size=self.key_size
        )
        return KeyPair(public_key=private_key.public_key(), private_key=private_key)

    def max_plaintext_size(self, public_key: Any) -> int:
        """Largest plaintext, in bytes, one encryption under this key can carry."""
        if not isinstance(public_key, rsa.RSAPublicKey):
            msg = "Recipient key is not an RSA public key"
            raise CryptoError(msg)
        modulus_bytes = (public_key.key_size + 7) // 8
        if self.padding_scheme == "oaep":
            return modulus_bytes - 2 * hashes.SHA256.digest_size - 2
        return modulus_bytes - PKCS1V15_OVERHEAD

    def encrypt(self, plaintext: str, public_key: Any) -> str:
        limit = self.max_plaintext_size(public_key)
        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError as err:
            msg = "Message is not encodable as UTF-8"
            raise CryptoError(msg) from err
        if len(data) > limit:
            msg = f"Message is {len(data)} bytes, this key can encrypt at most {limit}"
            raise CryptoError(msg)

        try:
            ciphertext = public_key.encrypt(data, self._padding())
        except ValueError as err:
            msg = f"Encryption failed: {err}"
            raise CryptoError(msg) from err
        return CryptoUtils.to_text(ciphertext)

    def decrypt(self, ciphertext: str, private_key: Any) -> str:
        if not isinstance(private_key, rsa.RSAPrivateKey):
            msg = "Own key is not an RSA private key"
            raise CryptoError(msg)
        try:
            raw = CryptoUtils.from_text(ciphertext)
        except ValueError as err:
            msg = "Ciphertext is not valid base64"
            raise CryptoError(msg) from err

        try:
            data = private_key.decrypt(raw, self._padding())
        except ValueError as err:
            msg = "Decryption failed"
            raise CryptoError(msg) from err

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            msg = "Decrypted message is not valid UTF-8"
            raise CryptoError(msg) from err

    def serialize_public_key(self, public_key: Any) -> str:
        """Base64 of the DER SubjectPublicKeyInfo structure."""
        der = public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return CryptoUtils.to_text(der)

    def deserialize_public_key(self, blob: str) -> rsa.RSAPublicKey:
        try:
            public_key = serialization.load_der_public_key(CryptoUtils.from_text(blob))
        except (ValueError, UnsupportedAlgorithm) as err:
            msg = "Malformed public key blob"
            raise KeyFormatError(msg) from err
        if not isinstance(public_key, rsa.RSAPublicKey):
            msg = "Public key is not an RSA key"
            raise KeyFormatError(msg)
        return public_key


class PassthroughCryptoProvider:
    """No-op cipher with the provider interface, for smoke tests only.

    Keys are random tokens and messages travel in the clear.
    """

    def generate(self) -> KeyPair:
        token = secrets.token_hex(16)
        return KeyPair(public_key=token, private_key=token)

    @staticmethod
    def _check_key(key: Any) -> None:
        if not isinstance(key, str) or not key:
            msg = "Passthrough keys must be non-empty tokens"
            raise CryptoError(msg)

    def max_plaintext_size(self, public_key: Any) -> int:
        self._check_key(public_key)
        return PASSTHROUGH_MAX_PLAINTEXT

    def encrypt(self, plaintext: str, public_key: Any) -> str:
        limit = self.max_plaintext_size(public_key)
        if len(plaintext.encode("utf-8")) > limit:
            msg = f"Message exceeds {limit} bytes"
            raise CryptoError(msg)
        if "\n" in plaintext or "\r" in plaintext:
            msg = "Passthrough frames cannot carry line breaks"
            raise CryptoError(msg)
        return plaintext

    def decrypt(self, ciphertext: str, private_key: Any) -> str:
        self._check_key(private_key)
        return ciphertext

    def serialize_public_key(self, public_key: Any) -> str:
        self._check_key(public_key)
        return public_key

    def deserialize_public_key(self, blob: str) -> str:
        token = blob.strip()
        if not token or any(ch.isspace() for ch in token):
            msg = "Malformed passthrough key token"
            raise KeyFormatError(msg)
        return token


def create_crypto_provider(
    cipher: str = "rsa", key_size: int = 2048, padding_scheme: str = "oaep"
) -> RsaCryptoProvider | PassthroughCryptoProvider:
    """Build the provider selected by name."""
    if cipher == "rsa":
        return RsaCryptoProvider(key_size=key_size, padding_scheme=padding_scheme)
    if cipher == "passthrough":
        return PassthroughCryptoProvider()
    msg = f"Unknown cipher: {cipher}"
    raise ValueError(msg)
