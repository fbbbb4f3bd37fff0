"""
Custom exceptions for the relay.
"""

from __future__ import annotations


class RelayChatError(Exception):
    """Base exception for relay errors."""


class TransportError(RelayChatError):
    """Connect, accept, read or write failure on a connection."""


class HandshakeError(RelayChatError):
    """Key exchange did not complete."""


class KeyFormatError(HandshakeError):
    """Public key blob could not be deserialized."""


class CryptoError(RelayChatError):
    """Encryption or decryption failed."""


class NotReadyError(RelayChatError):
    """Send attempted before the relay public key is known."""


class MessageError(RelayChatError, ValueError):
    """Message cannot be framed on the wire."""
