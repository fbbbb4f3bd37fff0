"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Protocol

if TYPE_CHECKING:
    from relaychat.common.entities import KeyPair
    from relaychat.server.session import Session


class ICryptoProvider(Protocol):
    """Protocol for the cipher used on every hop of the relay."""

    def generate(self) -> KeyPair: ...

    def encrypt(self, plaintext: str, public_key: Any) -> str: ...

    def decrypt(self, ciphertext: str, private_key: Any) -> str: ...

    def serialize_public_key(self, public_key: Any) -> str: ...

    def deserialize_public_key(self, blob: str) -> Any: ...

    def max_plaintext_size(self, public_key: Any) -> int: ...


class ISessionRegistry(Protocol):
    """Protocol for the collection of live relay sessions."""

    def add(self, session: Session) -> None: ...

    def remove(self, session: Session) -> bool: ...

    def for_each(self, visitor: Callable[[Session], None]) -> None: ...
