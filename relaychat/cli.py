"""
Command-line interface for the encrypted message relay.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel, ValidationError

from relaychat.client.client import PeerClient
from relaychat.client.runner import ConsoleRunner
from relaychat.common.config import Config
from relaychat.common.crypto import RsaCryptoProvider, create_crypto_provider
from relaychat.common.exceptions import HandshakeError, TransportError
from relaychat.common.logging_config import setup_logging
from relaychat.common.models import CipherOptions, ClientOptions, ServerOptions
from relaychat.server import start_server
from relaychat.server.keygen import KeyGenerator

OptionsT = TypeVar("OptionsT", bound=BaseModel)

CIPHER_CHOICES = click.Choice(["rsa", "passthrough"])
PADDING_CHOICES = click.Choice(["oaep", "pkcs1v15"])


def _validate(model: type[OptionsT], **values: Any) -> OptionsT:
    try:
        return model(**values)
    except ValidationError as err:
        raise click.BadParameter(str(err)) from err


def _crypto_provider(options: CipherOptions, config: Config) -> Any:
    return create_crypto_provider(
        options.cipher or config.CIPHER,
        options.key_size or config.RSA_KEY_SIZE,
        options.padding or config.RSA_PADDING,
    )


@click.group()
def cli() -> None:
    """Encrypted message relay CLI"""


@cli.command()
@click.option(
    "--keys-dir",
    default=None,
    help="Directory to save keys (default: ./relaychat/keys)",
)
@click.option("--key-size", default=None, type=int, help="RSA modulus size in bits")
def keygen(keys_dir: str | None, key_size: int | None) -> None:
    """Generate relay RSA keys"""
    options = _validate(CipherOptions, key_size=key_size)
    keygen = KeyGenerator(
        keys_dir=Path(keys_dir) if keys_dir else None, key_size=options.key_size
    )
    keygen.generate_keys()
    click.echo("Keys generated and saved")


@cli.command()
@click.option(
    "--keys-dir",
    default=None,
    help="Load relay keys from this directory instead of generating fresh ones",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (default: from RELAYCHAT_SERVER_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind to (default: from RELAYCHAT_SERVER_PORT env or 12345)",
)
@click.option("--cipher", default=None, type=CIPHER_CHOICES, help="Cipher to use")
@click.option("--padding", default=None, type=PADDING_CHOICES, help="RSA padding")
@click.option("--key-size", default=None, type=int, help="RSA modulus size in bits")
def serve(
    keys_dir: str | None,
    host: str | None,
    port: int | None,
    cipher: str | None,
    padding: str | None,
    key_size: int | None,
) -> None:
    """Start the relay server"""
    options = _validate(
        ServerOptions,
        server_host=host,
        server_port=port,
        cipher=cipher,
        padding=padding,
        key_size=key_size,
    )
    config = Config()
    setup_logging(config)
    crypto = _crypto_provider(options, config)

    key_pair = None
    if keys_dir:
        if not isinstance(crypto, RsaCryptoProvider):
            msg = "--keys-dir can only be used with the rsa cipher"
            raise click.ClickException(msg)
        config.set_keys_dir(Path(keys_dir))
        try:
            key_pair = config.get_relay_keys()
        except ValueError as err:
            raise click.ClickException(str(err)) from err

    start_server(config, crypto_provider=crypto, key_pair=key_pair, **options.overrides())


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Relay host (default: from RELAYCHAT_SERVER_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Relay port (default: from RELAYCHAT_SERVER_PORT env or 12345)",
)
@click.option("--cipher", default=None, type=CIPHER_CHOICES, help="Cipher to use")
@click.option("--padding", default=None, type=PADDING_CHOICES, help="RSA padding")
@click.option("--key-size", default=None, type=int, help="RSA modulus size in bits")
def connect(
    host: str | None,
    port: int | None,
    cipher: str | None,
    padding: str | None,
    key_size: int | None,
) -> None:
    """Connect to a relay and chat from stdin"""
    options = _validate(
        ClientOptions,
        server_host=host,
        server_port=port,
        cipher=cipher,
        padding=padding,
        key_size=key_size,
    )
    config = Config()
    setup_logging(config)

    client = PeerClient(
        crypto_provider=_crypto_provider(options, config),
        on_message=lambda message: click.echo(f"[Received] {message}"),
        config=config,
        **options.overrides(),
    )
    try:
        client.connect()
    except (TransportError, HandshakeError) as err:
        raise click.ClickException(str(err)) from err

    click.echo(
        f"Connected. Type your message and hit Enter. Type '{client.exit_command}' to disconnect."
    )
    ConsoleRunner(client, click.get_text_stream("stdin")).run()
    click.echo("Disconnected")


if __name__ == "__main__":
    cli()
