from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import NewType

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..domain.constants import ADDRESS_LENGTH

AddressB64 = NewType("AddressB64", str)
SignatureB64 = NewType("SignatureB64", str)


def address_to_b64(address: bytes) -> AddressB64:
    """Encode a raw 32-byte address into its base64 text form."""
    return AddressB64(base64.b64encode(address).decode("utf-8"))


def address_from_b64(address_b64: str) -> bytes:
    """Decode a base64 address (strict validation, exactly 32 bytes)."""
    raw = base64.b64decode(address_b64, validate=True)
    if len(raw) != ADDRESS_LENGTH:
        raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return raw


def public_key_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def sign_bytes(private_key: Ed25519PrivateKey, payload_bytes: bytes) -> SignatureB64:
    """Sign bytes with Ed25519 and return the base64-encoded signature."""
    return SignatureB64(base64.b64encode(private_key.sign(payload_bytes)).decode("utf-8"))


def verify_signature_bytes(
    address: bytes, payload_bytes: bytes, signature_b64: str
) -> bool:
    """Verify a base64 Ed25519 signature made by `address`. Raises InvalidSignature on failure."""
    public_key = Ed25519PublicKey.from_public_bytes(address)
    public_key.verify(base64.b64decode(signature_b64, validate=True), payload_bytes)
    return True


@dataclass(frozen=True)
class Keypair:
    """Ed25519 signing identity; its public key is the ledger address."""

    private_key: Ed25519PrivateKey

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def address(self) -> bytes:
        return public_key_bytes(self.private_key.public_key())

    @property
    def address_b64(self) -> AddressB64:
        return address_to_b64(self.address)

    def sign(self, payload_bytes: bytes) -> SignatureB64:
        return sign_bytes(self.private_key, payload_bytes)
