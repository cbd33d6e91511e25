# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Ed25519 key material and canonical-payload signing."""

from .keys import KeyManager, KeyPair, from_base64, generate_keypair, to_base64
from .signing import canonicalize, sign, verify

__all__ = [
    "KeyManager",
    "KeyPair",
    "canonicalize",
    "from_base64",
    "generate_keypair",
    "sign",
    "to_base64",
    "verify",
]
