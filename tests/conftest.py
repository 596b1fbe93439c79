"""Shared fixtures: a synthetic but fully valid update.dat."""

import random
from dataclasses import dataclass

import pytest

from tl866_firmware.firmware_codec import (
    FIRMWARE_SIGNATURE,
    FIRMWARE_SIGNATURE_OFFSET,
    UNENCRYPTED_FIRMWARE_SIZE,
    encrypt_with_table,
)
from tl866_firmware.update_package import KEY_REGION_SIZE, build_update_package
from tl866_firmware.utils.randomness import SeededRandomSource

# Plaintext blocks 1583..1643 hold the encrypted XOR table windows; they
# must be erased (0xFF) for the table to survive encryption.
TABLE_CARRIER_START = 1583 * 64
TABLE_CARRIER_END = 1644 * 64


def make_plaintext(seed: int, signature: int = FIRMWARE_SIGNATURE) -> bytes:
    rng = random.Random(seed)
    data = bytearray(rng.randbytes(UNENCRYPTED_FIRMWARE_SIZE))
    data[TABLE_CARRIER_START:TABLE_CARRIER_END] = b"\xff" * (TABLE_CARRIER_END - TABLE_CARRIER_START)
    data[FIRMWARE_SIGNATURE_OFFSET:FIRMWARE_SIGNATURE_OFFSET + 4] = signature.to_bytes(4, "little")
    return bytes(data)


def make_table(seed: int) -> bytes:
    return random.Random(seed).randbytes(256)


def make_key_region(seed: int) -> bytes:
    return random.Random(seed).randbytes(KEY_REGION_SIZE)


@dataclass(frozen=True)
class SyntheticUpdate:
    plaintext_a: bytes
    plaintext_cs: bytes
    table_a: bytes
    table_cs: bytes
    image_a: bytes
    image_cs: bytes
    key_region_a: bytes
    key_region_cs: bytes
    raw: bytes


ERASE_A = 0x11
ERASE_CS = 0x22
VERSION = 3


@pytest.fixture(scope="session")
def synthetic_update() -> SyntheticUpdate:
    plaintext_a = make_plaintext(1)
    plaintext_cs = make_plaintext(2)
    table_a = make_table(3)
    table_cs = make_table(4)
    image_a = encrypt_with_table(plaintext_a, table_a, SeededRandomSource(5))
    image_cs = encrypt_with_table(plaintext_cs, table_cs, SeededRandomSource(6))
    key_region_a = make_key_region(7)
    key_region_cs = make_key_region(8)
    raw = build_update_package(
        image_a,
        image_cs,
        key_region_a,
        key_region_cs,
        erase_a=ERASE_A,
        erase_cs=ERASE_CS,
        version=VERSION,
    )
    return SyntheticUpdate(
        plaintext_a=plaintext_a,
        plaintext_cs=plaintext_cs,
        table_a=table_a,
        table_cs=table_cs,
        image_a=image_a,
        image_cs=image_cs,
        key_region_a=key_region_a,
        key_region_cs=key_region_cs,
        raw=raw,
    )


@pytest.fixture
def update_dat(tmp_path, synthetic_update):
    path = tmp_path / "update.dat"
    path.write_bytes(synthetic_update.raw)
    return path
