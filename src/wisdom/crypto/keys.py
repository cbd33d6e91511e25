# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Ed25519 key material for the configured agent.

Private keys are stored as the base64 encoding of the raw 32-byte seed,
public keys as the base64 encoding of the raw 32-byte point.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from ..core.config import WisdomConfig
from ..core.exceptions import PreconditionError

logger = logging.getLogger(__name__)

KEY_SIZE = 32


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_base64(value: str) -> bytes:
    """Decode standard base64.

    Raises:
        ValueError: If ``value`` is not valid base64.
    """
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64: {e}") from e


def _private_bytes(key: Ed25519PrivateKey) -> bytes:
    return key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())


def _public_bytes(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(Encoding.Raw, PublicFormat.Raw)


@dataclass(frozen=True)
class KeyPair:
    """Raw Ed25519 seed and public key."""

    private_key: bytes
    public_key: bytes

    @property
    def private_key_base64(self) -> str:
        return to_base64(self.private_key)

    @property
    def public_key_base64(self) -> str:
        return to_base64(self.public_key)

    @classmethod
    def from_seed(cls, seed: bytes) -> KeyPair:
        """Derive the keypair for a 32-byte seed."""
        if len(seed) != KEY_SIZE:
            raise ValueError(f"Ed25519 seed must be {KEY_SIZE} bytes, got {len(seed)}")
        private = Ed25519PrivateKey.from_private_bytes(seed)
        return cls(private_key=seed, public_key=_public_bytes(private.public_key()))


def generate_keypair() -> KeyPair:
    """Generate a fresh keypair from the OS entropy source."""
    private = Ed25519PrivateKey.generate()
    return KeyPair(private_key=_private_bytes(private), public_key=_public_bytes(private.public_key()))


def public_key_for(private_key: bytes) -> bytes:
    return KeyPair.from_seed(private_key).public_key


class KeyManager:
    """Holds the configured agent's signing key.

    The key is decoded once per configuration; an undecodable key is
    treated as absent, and callers that need it get a PreconditionError.
    """

    REMEDY = "wisdom_generate_keypair"

    def __init__(self, config: WisdomConfig) -> None:
        self._keypair: KeyPair | None = None
        self.set_config(config)

    def set_config(self, config: WisdomConfig) -> None:
        self._keypair = None
        if not config.private_key:
            return
        try:
            self._keypair = KeyPair.from_seed(from_base64(config.private_key))
        except ValueError as e:
            logger.warning(f"Configured private key is unusable, ignoring it: {e}")

    def has_private_key(self) -> bool:
        return self._keypair is not None

    def _require(self) -> KeyPair:
        if self._keypair is None:
            raise PreconditionError("No private key configured.", remedy=self.REMEDY)
        return self._keypair

    def get_private_key(self) -> bytes:
        """
        Raises:
            PreconditionError: If no usable key is configured.
        """
        return self._require().private_key

    def get_public_key(self) -> bytes:
        return self._require().public_key

    def get_public_key_base64(self) -> str:
        return self._require().public_key_base64
