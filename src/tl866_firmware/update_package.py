"""
Loader/validator for the vendor update.dat package.

update.dat layout (312348 bytes):
| Offset  | Size    | Description |
|---------|---------|-------------|
| 0x00    | 1       | Version |
| 0x04    | 4       | CRC-32 of the TL866A image (after stage 1) |
| 0x09    | 1       | TL866A erase parameter |
| 0x0C    | 4       | CRC-32 of the TL866CS image (after stage 1) |
| 0x11    | 1       | TL866CS erase parameter |
| 0x14    | 1284    | TL866A stage-1 key region |
| 0x518   | 1284    | TL866CS stage-1 key region |
| 0xA1C   | 0x25D00 | TL866A scrambled image |
| 0x2671C | 0x25D00 | TL866CS scrambled image |

A key region is a u32 seed, a 256-byte window indexed by block number
(80-byte blocks) and a 1024-byte window indexed by ``seed + position``.
Stage 1 is a plain XOR, so the same routine scrambles and descrambles.
"""

import logging
import struct
from pathlib import Path
from typing import Dict, Optional, Union

from .checksums import crc32
from .errors import (
    ChecksumError,
    DecryptionError,
    NotLoadedError,
    require_size,
)
from .firmware_codec import (
    ENCRYPTED_FIRMWARE_SIZE,
    FIRMWARE_SIGNATURE,
    UNENCRYPTED_FIRMWARE_SIZE,
    decrypt_image,
    encrypt_image,
    read_signature,
)
from .utils.crypto import BLOCK_SIZE
from .utils.randomness import RandomByteSource
from .variants import DeviceVariant

logger = logging.getLogger(__name__)

UPDATE_DAT_SIZE = 312348
VERSION_OFFSET = 0
KEY_REGION_SIZE = 4 + 256 + 1024
BLOCK_WINDOW_OFFSET = 4
BLOCK_WINDOW_SIZE = 256
BYTE_WINDOW_OFFSET = 4 + 256
BYTE_WINDOW_SIZE = 1024


def scramble_payload(payload: bytes, key_region: bytes) -> bytes:
    """
    Apply the stage-1 XOR to a firmware payload.

    Byte i is XORed with ``byte_window[(seed + i) & 0x3FF]`` and
    ``block_window[(i // 80) & 0xFF]``. Applying it twice is a no-op.
    """
    require_size(key_region, KEY_REGION_SIZE, "stage-1 key region")
    (seed,) = struct.unpack_from("<I", key_region, 0)
    block_window = key_region[BLOCK_WINDOW_OFFSET:BLOCK_WINDOW_OFFSET + BLOCK_WINDOW_SIZE]
    byte_window = key_region[BYTE_WINDOW_OFFSET:BYTE_WINDOW_OFFSET + BYTE_WINDOW_SIZE]
    keystream = bytes(
        byte_window[(seed + i) & 0x3FF] ^ block_window[(i // BLOCK_SIZE) & 0xFF]
        for i in range(len(payload))
    )
    value = int.from_bytes(payload, "big") ^ int.from_bytes(keystream, "big")
    return value.to_bytes(len(payload), "big")


def build_update_package(
    firmware_a: bytes,
    firmware_cs: bytes,
    key_region_a: bytes,
    key_region_cs: bytes,
    erase_a: int = 0,
    erase_cs: int = 0,
    version: int = 0,
) -> bytes:
    """
    Assemble a loadable update.dat from two encrypted firmware images.

    Args:
        firmware_a: Encrypted TL866A image (0x25D00 bytes)
        firmware_cs: Encrypted TL866CS image (0x25D00 bytes)
        key_region_a: 1284-byte stage-1 key region for TL866A
        key_region_cs: 1284-byte stage-1 key region for TL866CS
        erase_a: TL866A erase parameter byte
        erase_cs: TL866CS erase parameter byte
        version: Package version byte

    Returns:
        Complete 312348-byte package
    """
    images = {DeviceVariant.A: firmware_a, DeviceVariant.CS: firmware_cs}
    keys = {DeviceVariant.A: key_region_a, DeviceVariant.CS: key_region_cs}
    erase = {DeviceVariant.A: erase_a, DeviceVariant.CS: erase_cs}

    package = bytearray(UPDATE_DAT_SIZE)
    package[VERSION_OFFSET] = version & 0xFF
    for variant, image in images.items():
        layout = variant.layout
        require_size(image, ENCRYPTED_FIRMWARE_SIZE, "encrypted firmware", variant=layout.label)
        require_size(keys[variant], KEY_REGION_SIZE, "stage-1 key region", variant=layout.label)
        struct.pack_into("<I", package, layout.crc_offset, crc32(image))
        package[layout.erase_offset] = erase[variant] & 0xFF
        package[layout.key_offset:layout.key_offset + KEY_REGION_SIZE] = keys[variant]
        package[layout.firmware_offset:layout.firmware_offset + ENCRYPTED_FIRMWARE_SIZE] = scramble_payload(
            image, keys[variant]
        )
    return bytes(package)


class UpdatePackage:
    """
    Both encrypted firmware images from a validated update.dat.

    Build instances with :meth:`load` or :meth:`from_file`. A bare
    ``UpdatePackage()`` is not ready and every accessor raises
    NotLoadedError. The stored images are never modified after load.
    """

    def __init__(self) -> None:
        self._firmware: Dict[DeviceVariant, bytes] = {}
        self._erase: Dict[DeviceVariant, int] = {}
        self._crc: Dict[DeviceVariant, int] = {}
        self._version = 0
        self._ready = False
        self._rng: Optional[RandomByteSource] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], rng: Optional[RandomByteSource] = None) -> "UpdatePackage":
        """Read and validate an update.dat file."""
        path = Path(path)
        logger.info("Loading update package %s", path)
        return cls.load(path.read_bytes(), rng=rng)

    @classmethod
    def load(cls, raw: bytes, rng: Optional[RandomByteSource] = None) -> "UpdatePackage":
        """
        Validate a raw update.dat and return a ready package.

        Raises:
            SizeError: ``raw`` is not exactly UPDATE_DAT_SIZE bytes
            ChecksumError: a descrambled image fails its CRC-32
            DecryptionError: a decrypted image lacks the firmware signature
        """
        require_size(raw, UPDATE_DAT_SIZE, "update package")

        firmware: Dict[DeviceVariant, bytes] = {}
        erase: Dict[DeviceVariant, int] = {}
        crcs: Dict[DeviceVariant, int] = {}
        for variant in DeviceVariant:
            layout = variant.layout
            erase[variant] = raw[layout.erase_offset]
            key_region = raw[layout.key_offset:layout.key_offset + KEY_REGION_SIZE]
            payload = raw[layout.firmware_offset:layout.firmware_offset + ENCRYPTED_FIRMWARE_SIZE]
            image = scramble_payload(payload, key_region)

            (expected,) = struct.unpack_from("<I", raw, layout.crc_offset)
            actual = crc32(image)
            if actual != expected:
                raise ChecksumError(
                    f"data CRC mismatch: expected {expected:08X}, got {actual:08X}",
                    variant=layout.label,
                    stage="stage-1 descramble",
                )
            logger.debug("%s image CRC-32 %08X ok", layout.label, actual)
            firmware[variant] = image
            crcs[variant] = actual

        for variant, image in firmware.items():
            signature = read_signature(decrypt_image(image, variant=variant.label))
            if signature != FIRMWARE_SIGNATURE:
                raise DecryptionError(
                    f"firmware signature mismatch: expected {FIRMWARE_SIGNATURE:08X}, got {signature:08X}",
                    variant=variant.label,
                    stage="signature check",
                )

        package = cls()
        package._firmware = firmware
        package._erase = erase
        package._crc = crcs
        package._version = raw[VERSION_OFFSET]
        package._rng = rng
        package._ready = True
        logger.info("Update package version %d loaded", package._version)
        return package

    def is_ready(self) -> bool:
        return self._ready

    def _require_ready(self) -> None:
        if not self._ready:
            raise NotLoadedError("no update package loaded")

    @property
    def version(self) -> int:
        self._require_ready()
        return self._version

    def erase_parameter(self, variant: DeviceVariant) -> int:
        self._require_ready()
        return self._erase[variant]

    def firmware_crc(self, variant: DeviceVariant) -> int:
        self._require_ready()
        return self._crc[variant]

    def firmware(self, variant: DeviceVariant) -> bytes:
        """Stored encrypted image for ``variant``."""
        self._require_ready()
        return self._firmware[variant]

    def get_encrypted_firmware(self, variant: DeviceVariant, key: DeviceVariant) -> bytes:
        """
        Firmware for ``variant`` encrypted with ``key``'s table.

        When ``variant == key`` the stored image is returned as-is.
        """
        self._require_ready()
        if variant == key:
            logger.debug("%s firmware requested with its own key, no transform", variant.label)
            return self._firmware[variant]
        logger.info("Re-keying %s firmware with %s key", variant.label, key.label)
        return self.encrypt_firmware(self.decrypt_firmware(variant), key)

    def decrypt_firmware(self, variant: DeviceVariant, image: Optional[bytes] = None) -> bytes:
        """
        Decrypt the stored image for ``variant``, or ``image`` when given.
        """
        self._require_ready()
        if image is None:
            image = self._firmware[variant]
        return decrypt_image(image, variant=variant.label)

    def encrypt_firmware(self, plaintext: bytes, key: DeviceVariant) -> bytes:
        """Encrypt 0x1E400 bytes of plaintext with ``key``'s table."""
        self._require_ready()
        require_size(plaintext, UNENCRYPTED_FIRMWARE_SIZE, "plaintext firmware", variant=key.label)
        return encrypt_image(plaintext, self._firmware[key], rng=self._rng, key=key.label)
