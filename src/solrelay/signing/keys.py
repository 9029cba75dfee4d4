"""Per-request secret key handling.

Secret keys arrive with each transfer request and live only for the
duration of one signing call. They are held in a mutable buffer so the
bytes can be overwritten as soon as the signer is done with them.

WARNING: Accepting raw secret keys over the API is a legacy contract.
Nothing here stores, logs or caches the key.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence, Union

import base58
from solders.keypair import Keypair

from solrelay.errors import InvalidKeyMaterial

logger = logging.getLogger(__name__)

# ed25519 secret (32) + public key (32), the Solana CLI keypair layout
SECRET_KEY_LENGTH = 64

SecretKeyInput = Union[str, bytes, bytearray, Sequence[int]]


def wipe(buffer: bytearray) -> None:
    """Overwrite a buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


def decode_secret_key(value: SecretKeyInput) -> bytearray:
    """Decode wire-format secret key material into a wipeable buffer.

    Accepts a JSON array of byte values (Solana CLI keypair file) or a
    base58 string (wallet export).

    Raises:
        InvalidKeyMaterial: On unsupported types, bad encoding or wrong length
    """
    try:
        if isinstance(value, str):
            buffer = bytearray(base58.b58decode(value.strip()))
        elif isinstance(value, (bytes, bytearray, list, tuple)):
            buffer = bytearray(value)
        else:
            raise InvalidKeyMaterial(
                f"Secret key must be a byte array or base58 string, got {type(value).__name__}"
            )
    except (ValueError, TypeError):
        raise InvalidKeyMaterial("Secret key is not a valid byte array or base58 string")

    if len(buffer) != SECRET_KEY_LENGTH:
        length = len(buffer)
        wipe(buffer)
        raise InvalidKeyMaterial(
            f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {length}"
        )

    return buffer


@contextmanager
def secret_key_scope(secret_key: bytearray) -> Iterator[Keypair]:
    """Rebuild a keypair from a secret key buffer and wipe it on exit.

    The buffer is zeroed on every exit path, including validation
    failures and exceptions raised inside the block.

    Raises:
        InvalidKeyMaterial: If the bytes do not form a valid ed25519 keypair
    """
    try:
        if len(secret_key) != SECRET_KEY_LENGTH:
            raise InvalidKeyMaterial(
                f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret_key)}"
            )
        try:
            keypair = Keypair.from_bytes(bytes(secret_key))
        except (ValueError, TypeError):
            raise InvalidKeyMaterial("Secret key bytes do not form a valid keypair")

        yield keypair

    finally:
        wipe(secret_key)
        logger.debug("Secret key buffer wiped")
