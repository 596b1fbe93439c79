"""
Whole-image encryption/decryption for TL866 firmware.

An encrypted image is 0x25D00 bytes: 1936 blocks of 80 bytes. Decryption
produces 1936 blocks of 64 bytes (0x1E400). The XOR table is never stored
on its own; it is recovered from a real encrypted image (see
Crypto.extract_xor_table). The table index starts at 0x15 and advances by
4 per block in both directions.
"""

import logging
from typing import Optional

from .errors import require_size
from .utils.crypto import BLOCK_SIZE, PADDING_SIZE, PLAIN_BLOCK_SIZE, Crypto
from .utils.randomness import RandomByteSource, default_source

logger = logging.getLogger(__name__)

ENCRYPTED_FIRMWARE_SIZE = 0x25D00
UNENCRYPTED_FIRMWARE_SIZE = 0x1E400
FIRMWARE_SIGNATURE_OFFSET = 0x1E3FC
FIRMWARE_SIGNATURE = 0x5AA5AA55
FIRMWARE_INDEX_START = 0x15
BLOCK_INDEX_STEP = 4


def decrypt_with_table(image: bytes, table: bytes) -> bytes:
    """Decrypt a full image with an already extracted XOR table."""
    require_size(image, ENCRYPTED_FIRMWARE_SIZE, "encrypted firmware")
    out = bytearray()
    index = FIRMWARE_INDEX_START
    for start in range(0, ENCRYPTED_FIRMWARE_SIZE, BLOCK_SIZE):
        out += Crypto.decrypt_block(image[start:start + BLOCK_SIZE], table, index)
        index = (index + BLOCK_INDEX_STEP) & 0xFF
    return bytes(out)


def encrypt_with_table(plaintext: bytes, table: bytes, rng: Optional[RandomByteSource] = None) -> bytes:
    """Encrypt a full plaintext image with an explicit XOR table."""
    require_size(plaintext, UNENCRYPTED_FIRMWARE_SIZE, "plaintext firmware")
    rng = default_source(rng)
    out = bytearray()
    index = FIRMWARE_INDEX_START
    for start in range(0, UNENCRYPTED_FIRMWARE_SIZE, PLAIN_BLOCK_SIZE):
        padding = rng.random_bytes(PADDING_SIZE)
        out += Crypto.encrypt_block(plaintext[start:start + PLAIN_BLOCK_SIZE], table, index, padding)
        index = (index + BLOCK_INDEX_STEP) & 0xFF
    return bytes(out)


def decrypt_image(image: bytes, variant: Optional[str] = None) -> bytes:
    """
    Decrypt an encrypted firmware image into flashable plaintext.

    The XOR table is taken from ``image`` itself.

    Args:
        image: 0x25D00-byte encrypted image
        variant: Optional label used in errors and log lines

    Returns:
        0x1E400-byte plaintext firmware
    """
    require_size(image, ENCRYPTED_FIRMWARE_SIZE, "encrypted firmware", variant=variant)
    table = Crypto.extract_xor_table(image)
    logger.debug("Decrypting %s firmware", variant or "supplied")
    return decrypt_with_table(image, table)


def encrypt_image(
    plaintext: bytes,
    key_image: bytes,
    rng: Optional[RandomByteSource] = None,
    key: Optional[str] = None,
) -> bytes:
    """
    Encrypt plaintext firmware using the XOR table carried by ``key_image``.

    Args:
        plaintext: 0x1E400-byte plaintext firmware
        key_image: Encrypted image whose table should be used
        rng: Source of the 16 padding bytes per block
        key: Optional label used in errors and log lines

    Returns:
        0x25D00-byte encrypted image
    """
    require_size(plaintext, UNENCRYPTED_FIRMWARE_SIZE, "plaintext firmware", variant=key)
    require_size(key_image, ENCRYPTED_FIRMWARE_SIZE, "key firmware", variant=key)
    table = Crypto.extract_xor_table(key_image)
    logger.debug("Encrypting firmware with %s key", key or "supplied")
    image = encrypt_with_table(plaintext, table, rng)
    if Crypto.extract_xor_table(image) != table:
        logger.warning(
            "Encrypted image does not carry the %s key table; "
            "plaintext is not erased over the table region",
            key or "supplied",
        )
    return image


def read_signature(plaintext: bytes) -> int:
    """Return the little-endian u32 at FIRMWARE_SIGNATURE_OFFSET."""
    return int.from_bytes(plaintext[FIRMWARE_SIGNATURE_OFFSET:FIRMWARE_SIGNATURE_OFFSET + 4], "little")
