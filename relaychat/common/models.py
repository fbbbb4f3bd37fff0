"""
Pydantic models for validating relay and client options.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class CipherOptions(BaseModel):
    cipher: Literal["rsa", "passthrough"] | None = None
    key_size: int | None = Field(default=None, ge=1024)
    padding: Literal["oaep", "pkcs1v15"] | None = None


class ServerOptions(CipherOptions):
    server_host: str | None = None
    server_port: int | None = Field(default=None, ge=0, le=65535)
    listen_backlog: int | None = Field(default=None, gt=0)
    max_line_length: int | None = Field(default=None, gt=0)

    def overrides(self) -> dict[str, str | int]:
        """Listener overrides, without the cipher selection."""
        return self.model_dump(
            exclude_none=True, exclude={"cipher", "key_size", "padding"}
        )


class ClientOptions(CipherOptions):
    server_host: str | None = None
    server_port: int | None = Field(default=None, ge=1, le=65535)
    connect_timeout: float | None = Field(default=None, gt=0)
    max_line_length: int | None = Field(default=None, gt=0)
    exit_command: str | None = Field(default=None, min_length=1)

    def overrides(self) -> dict[str, str | int | float]:
        """Client overrides, without the cipher selection."""
        return self.model_dump(
            exclude_none=True, exclude={"cipher", "key_size", "padding"}
        )
