"""
Core workflow actions for the TL866 firmware tool.

File-level wrappers around the codecs. Each action returns an
OperationResult instead of raising for format or I/O problems, so the CLI
only has to render results.
"""

import hashlib
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from tl866_firmware.errors import Tl866FirmwareError
from tl866_firmware.firmware_codec import decrypt_image
from tl866_firmware.serial_record import decode_serial, detect_bootloader, write_serial
from tl866_firmware.update_package import UpdatePackage
from tl866_firmware.utils.randomness import RandomByteSource
from tl866_firmware.variants import DeviceVariant

from .results import OperationResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class _ListLogHandler(logging.Handler):
    """Capture log records into a list of formatted strings."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.records = []
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


@contextmanager
def _capture_logs(logger_name: str = "tl866_firmware"):
    """Capture logs for core operations into a list."""
    target_logger = logging.getLogger(logger_name)
    handler = _ListLogHandler()
    previous_level = target_logger.level
    if previous_level in (logging.NOTSET, logging.WARNING, logging.ERROR, logging.CRITICAL):
        target_logger.setLevel(logging.INFO)
    target_logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        target_logger.removeHandler(handler)
        target_logger.setLevel(previous_level)


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _write_output(result: OperationResult, output_path: PathLike, data: bytes) -> None:
    path = Path(output_path)
    path.write_bytes(data)
    result.output = str(path)
    result.bytes_len = len(data)
    result.hashes["sha256"] = _sha256(data)


def inspect_update(update_path: PathLike) -> OperationResult:
    """
    Validate an update.dat and report what it contains.

    Returns:
        OperationResult with metadata version, erase and crc32 per variant
        and hashes of both encrypted images.
    """
    with _capture_logs() as logs:
        try:
            package = UpdatePackage.from_file(update_path)
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure("inspect", str(exc), logs=list(logs))

        result = OperationResult.success("inspect", bytes_len=Path(update_path).stat().st_size)
        result.metadata["version"] = package.version
        for variant in DeviceVariant:
            image = package.firmware(variant)
            result.metadata[variant.label] = {
                "erase": package.erase_parameter(variant),
                "crc32": f"{package.firmware_crc(variant):08X}",
            }
            result.hashes[f"{variant.label} sha256"] = _sha256(image)
        result.logs = list(logs)
        return result


def extract_firmware(
    update_path: PathLike,
    variant: DeviceVariant,
    output_path: PathLike,
    key: Optional[DeviceVariant] = None,
    decrypt: bool = False,
    rng: Optional[RandomByteSource] = None,
) -> OperationResult:
    """
    Write one variant's firmware from update.dat.

    Args:
        update_path: Path to update.dat
        variant: Firmware to extract
        output_path: Destination file
        key: Encrypt with this variant's table (default: the variant's own)
        decrypt: Write flashable plaintext instead of an encrypted image
        rng: Padding source used when re-keying
    """
    operation = "decrypt" if decrypt else "extract"
    with _capture_logs() as logs:
        try:
            package = UpdatePackage.from_file(update_path, rng=rng)
            if decrypt:
                data = package.decrypt_firmware(variant)
            else:
                data = package.get_encrypted_firmware(variant, key or variant)
            result = OperationResult.success(operation, variant=variant.label)
            if key is not None and not decrypt:
                result.metadata["key"] = key.label
            _write_output(result, output_path, data)
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure(operation, str(exc), variant=variant.label, logs=list(logs))
        result.logs = list(logs)
        return result


def decrypt_firmware_file(image_path: PathLike, output_path: PathLike) -> OperationResult:
    """Decrypt an encrypted firmware image using the table it carries."""
    with _capture_logs() as logs:
        try:
            data = decrypt_image(Path(image_path).read_bytes())
            result = OperationResult.success("decrypt_image")
            _write_output(result, output_path, data)
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure("decrypt_image", str(exc), logs=list(logs))
        result.logs = list(logs)
        return result


def encrypt_firmware_file(
    plaintext_path: PathLike,
    update_path: PathLike,
    key: DeviceVariant,
    output_path: PathLike,
    rng: Optional[RandomByteSource] = None,
) -> OperationResult:
    """Encrypt plaintext firmware with a key table taken from update.dat."""
    with _capture_logs() as logs:
        try:
            package = UpdatePackage.from_file(update_path, rng=rng)
            data = package.encrypt_firmware(Path(plaintext_path).read_bytes(), key)
            result = OperationResult.success("encrypt", variant=key.label)
            _write_output(result, output_path, data)
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure("encrypt", str(exc), variant=key.label, logs=list(logs))
        result.logs = list(logs)
        return result


def read_serial(dump_path: PathLike) -> OperationResult:
    """Decode the serial record from a flash dump or firmware image."""
    with _capture_logs() as logs:
        try:
            info = decode_serial(Path(dump_path).read_bytes())
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure("serial_show", str(exc), logs=list(logs))
        result = OperationResult.success("serial_show", bytes_len=len(info.raw))
        result.metadata["device_code"] = info.device_code
        result.metadata["serial_number"] = info.serial_number
        result.metadata["valid"] = info.valid
        if not info.valid:
            result.add_warning("Serial record checksum is not zero")
        result.logs = list(logs)
        return result


def set_serial(
    dump_path: PathLike,
    device_code: str,
    serial_number: str,
    output_path: PathLike,
    rng: Optional[RandomByteSource] = None,
    max_attempts: Optional[int] = None,
) -> OperationResult:
    """Write a copy of a flash dump with a new serial record."""
    with _capture_logs() as logs:
        try:
            image = Path(dump_path).read_bytes()
            data = write_serial(image, device_code, serial_number, rng=rng, max_attempts=max_attempts)
            result = OperationResult.success("serial_set")
            result.metadata["device_code"] = device_code
            result.metadata["serial_number"] = serial_number
            _write_output(result, output_path, data)
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure("serial_set", str(exc), logs=list(logs))
        result.logs = list(logs)
        return result


def identify_bootloader(dump_path: PathLike) -> OperationResult:
    """Report which bootloader a flash dump carries."""
    with _capture_logs() as logs:
        try:
            variant = detect_bootloader(Path(dump_path).read_bytes())
        except (Tl866FirmwareError, OSError) as exc:
            return OperationResult.failure("bootloader", str(exc), logs=list(logs))
        if variant is None:
            return OperationResult.failure("bootloader", "Unknown bootloader", logs=list(logs))
        return OperationResult.success("bootloader", variant=variant.label, logs=list(logs))
