"""
Serial number record stored in TL866 flash.

The 80-byte record at SERIAL_OFFSET holds an 8-byte device code, a
24-byte serial number, random filler and a CRC-16 in the last two bytes
(low byte first). A record is valid when the CRC-16 over all 80 bytes
is zero. It is encrypted with the same xor/shift/partial-swap steps as a
firmware block, using the 256 bytes at SERIAL_TABLE_OFFSET as XOR table.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .checksums import crc16
from .errors import RetryBudgetExceeded, SizeError, require_size
from .utils.crypto import Crypto
from .utils.randomness import RandomByteSource, default_source
from .variants import DeviceVariant

logger = logging.getLogger(__name__)

SERIAL_RECORD_SIZE = 0x50
SERIAL_OFFSET = 0x1FD00
SERIAL_TABLE_OFFSET = 0x1FC00
SERIAL_TABLE_SIZE = 0x100
SERIAL_INDEX_START = 0x0A
DEVICE_CODE_SIZE = 8
SERIAL_NUMBER_SIZE = 24
FILLER_START = DEVICE_CODE_SIZE + SERIAL_NUMBER_SIZE
CRC_ACCEPT_LIMIT = 0x2000

BOOTLOADER_SIZE = 0x1800


@dataclass(frozen=True)
class SerialInfo:
    """Decoded serial record."""

    device_code: str
    serial_number: str
    raw: bytes
    valid: bool


def _serial_table(image: bytes) -> bytes:
    if len(image) < SERIAL_OFFSET + SERIAL_RECORD_SIZE:
        raise SizeError(
            f"image too short for serial record: need {SERIAL_OFFSET + SERIAL_RECORD_SIZE:#x} bytes, "
            f"got {len(image):#x}",
            stage="serial record",
        )
    return image[SERIAL_TABLE_OFFSET:SERIAL_TABLE_OFFSET + SERIAL_TABLE_SIZE]


def key_checksum(record: bytes) -> int:
    """CRC-16 of an 80-byte record; zero when the record is valid."""
    require_size(record, SERIAL_RECORD_SIZE, "serial record")
    return crc16(record)


def decrypt_serial(record: bytes, image: bytes) -> bytes:
    """Decrypt an 80-byte serial record using ``image``'s serial table."""
    require_size(record, SERIAL_RECORD_SIZE, "serial record")
    table = _serial_table(image)
    data = Crypto.xor_with_table(record, table, SERIAL_INDEX_START)
    data = Crypto.shift_right_3(data)
    return Crypto.mirror_swap(data)


def normalize_checksum(
    record: bytes,
    rng: Optional[RandomByteSource] = None,
    max_attempts: Optional[int] = None,
) -> bytes:
    """
    Give a plaintext record a valid checksum.

    Records whose CRC is already zero and below 0x2000 are returned
    unchanged. Otherwise the filler bytes 32..77 are re-rolled until the
    CRC-16 of the first 78 bytes is below 0x2000, and that CRC is stored
    low byte first. The high CRC byte lands in the three bits the
    encryption shift drops, so it has to stay below 0x20.

    Raises:
        RetryBudgetExceeded: ``max_attempts`` rolls did not produce an
            acceptable CRC
    """
    require_size(record, SERIAL_RECORD_SIZE, "serial record")
    if key_checksum(record) == 0 and crc16(record[:-2]) < CRC_ACCEPT_LIMIT:
        return bytes(record)

    rng = default_source(rng)
    body = bytearray(record[:-2])
    attempts = 0
    while True:
        if max_attempts is not None and attempts >= max_attempts:
            raise RetryBudgetExceeded(
                f"no acceptable checksum after {attempts} attempts",
                stage="serial checksum",
            )
        attempts += 1
        body[FILLER_START:] = rng.random_bytes(len(body) - FILLER_START)
        crc = crc16(bytes(body))
        if crc < CRC_ACCEPT_LIMIT:
            break
    logger.debug("Serial checksum %04X accepted after %d attempt(s)", crc, attempts)
    return bytes(body) + bytes([crc & 0xFF, crc >> 8])


def encrypt_serial(
    record: bytes,
    image: bytes,
    rng: Optional[RandomByteSource] = None,
    max_attempts: Optional[int] = None,
) -> bytes:
    """
    Encrypt an 80-byte plaintext serial record.

    The checksum is fixed up first (see normalize_checksum), then the
    record goes through swap, shift left and XOR.
    """
    table = _serial_table(image)
    data = normalize_checksum(record, rng=rng, max_attempts=max_attempts)
    data = Crypto.mirror_swap(data)
    data = Crypto.shift_left_3(data)
    return Crypto.xor_with_table(data, table, SERIAL_INDEX_START)


def _decode_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\x00")


def decode_serial(image: bytes) -> SerialInfo:
    """Read and decrypt the serial record embedded in ``image``."""
    _serial_table(image)
    record = decrypt_serial(image[SERIAL_OFFSET:SERIAL_OFFSET + SERIAL_RECORD_SIZE], image)
    return SerialInfo(
        device_code=_decode_text(record[:DEVICE_CODE_SIZE]),
        serial_number=_decode_text(record[DEVICE_CODE_SIZE:FILLER_START]),
        raw=record,
        valid=key_checksum(record) == 0,
    )


def _encode_field(value: str, size: int, name: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) > size:
        raise SizeError(f"{name} is {len(raw)} bytes, at most {size} allowed", stage="serial record")
    return raw.ljust(size, b"\x00")


def build_serial_record(
    device_code: str,
    serial_number: str,
    rng: Optional[RandomByteSource] = None,
) -> bytes:
    """Plaintext record: NUL-padded text fields followed by random filler."""
    rng = default_source(rng)
    head = _encode_field(device_code, DEVICE_CODE_SIZE, "device code")
    head += _encode_field(serial_number, SERIAL_NUMBER_SIZE, "serial number")
    return head + rng.random_bytes(SERIAL_RECORD_SIZE - FILLER_START)


def write_serial(
    image: bytes,
    device_code: str,
    serial_number: str,
    rng: Optional[RandomByteSource] = None,
    max_attempts: Optional[int] = None,
) -> bytes:
    """Return a copy of ``image`` with a new encrypted serial record."""
    rng = default_source(rng)
    record = build_serial_record(device_code, serial_number, rng)
    encrypted = encrypt_serial(record, image, rng=rng, max_attempts=max_attempts)
    out = bytearray(image)
    out[SERIAL_OFFSET:SERIAL_OFFSET + SERIAL_RECORD_SIZE] = encrypted
    logger.info("Serial record set to %r / %r", device_code, serial_number)
    return bytes(out)


def detect_bootloader(flash_dump: bytes) -> Optional[DeviceVariant]:
    """Identify the bootloader from the CRC-16 of its first 0x1800 bytes."""
    if len(flash_dump) < BOOTLOADER_SIZE:
        raise SizeError(
            f"flash dump too short: need {BOOTLOADER_SIZE:#x} bytes, got {len(flash_dump):#x}",
            stage="bootloader",
        )
    crc = crc16(flash_dump[:BOOTLOADER_SIZE])
    for variant in DeviceVariant:
        if variant.layout.bootloader_crc == crc:
            return variant
    logger.debug("Unknown bootloader CRC-16 %04X", crc)
    return None
