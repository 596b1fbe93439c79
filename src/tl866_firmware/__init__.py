"""
TL866 Firmware Tool - update.dat decoding and firmware re-keying for TL866A/CS

Validates the vendor update package, decrypts and re-encrypts firmware
images, and reads or rewrites the serial record stored in flash.
"""

__version__ = "0.1.0"

from tl866_firmware.errors import (
    ChecksumError,
    DecryptionError,
    NotLoadedError,
    RetryBudgetExceeded,
    SizeError,
    Tl866FirmwareError,
)
from tl866_firmware.firmware_codec import decrypt_image, encrypt_image
from tl866_firmware.serial_record import (
    SerialInfo,
    decode_serial,
    decrypt_serial,
    encrypt_serial,
    key_checksum,
)
from tl866_firmware.update_package import UpdatePackage
from tl866_firmware.variants import DeviceVariant

__all__ = [
    "ChecksumError",
    "DecryptionError",
    "NotLoadedError",
    "RetryBudgetExceeded",
    "SizeError",
    "Tl866FirmwareError",
    "DeviceVariant",
    "UpdatePackage",
    "decrypt_image",
    "encrypt_image",
    "SerialInfo",
    "decode_serial",
    "decrypt_serial",
    "encrypt_serial",
    "key_checksum",
    "__version__",
]
