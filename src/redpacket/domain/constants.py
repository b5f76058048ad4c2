"""Program-wide constants: seeds, limits, discriminators and record sizes."""

from __future__ import annotations

from typing import Final

# Derived address seeds
SEED_PREFIX: Final[bytes] = b"redpacket"
VAULT_SEED: Final[bytes] = b"vault"
TREASURY_SEED: Final[bytes] = b"treasury"
TREASURY_VAULT_SEED: Final[bytes] = b"treasury_vault"

# Asset kinds carried in every instruction body
TOKEN_TYPE_SPL: Final[int] = 0
TOKEN_TYPE_SOL: Final[int] = 1

SPLIT_EVEN: Final[int] = 0
SPLIT_RANDOM: Final[int] = 1

MAX_RECIPIENTS: Final[int] = 20

REDPACKET_DISCRIMINATOR: Final[int] = 1
TREASURY_DISCRIMINATOR: Final[int] = 2

# 0.1% = 10 basis points
FEE_RATE_BPS: Final[int] = 10
FEE_DENOMINATOR: Final[int] = 10_000

REDPACKET_BASE_SIZE: Final[int] = 71
PER_RECIPIENT_SIZE: Final[int] = 40
TREASURY_SIZE: Final[int] = 43
TOKEN_ACCOUNT_SIZE: Final[int] = 165
MINT_SIZE: Final[int] = 82

ADDRESS_LENGTH: Final[int] = 32

# Sentinel asset identifier for the native-coin treasury (not a real mint)
NATIVE_SOL_MINT: Final[bytes] = b"\xff" * ADDRESS_LENGTH

# Well-known builtin program identities
SYSTEM_PROGRAM_ID: Final[bytes] = bytes(ADDRESS_LENGTH)
TOKEN_PROGRAM_ID: Final[bytes] = b"\x06" + b"token-program".ljust(31, b"\x00")

U64_MAX: Final[int] = 2**64 - 1

LAMPORTS_PER_BYTE_YEAR: Final[int] = 3480
EXEMPTION_THRESHOLD_YEARS: Final[int] = 2
ACCOUNT_STORAGE_OVERHEAD: Final[int] = 128


def redpacket_size(num_recipients: int) -> int:
    """Total byte size of a red packet record with `num_recipients` slots."""
    return REDPACKET_BASE_SIZE + PER_RECIPIENT_SIZE * num_recipients


def rent_exempt_minimum(data_len: int) -> int:
    """Lamports an account of `data_len` bytes must hold to be rent-exempt."""
    return (
        (data_len + ACCOUNT_STORAGE_OVERHEAD)
        * LAMPORTS_PER_BYTE_YEAR
        * EXEMPTION_THRESHOLD_YEARS
    )
