"""
Core module for the TL866 firmware tool.

This module provides the single source of truth for:
- Number and variant parsing (parsing.py)
- Result objects (results.py)
- File-level read/convert/write workflows (actions.py)

The CLI calls into this module rather than implementing its own logic.
"""

from .parsing import parse_int, parse_variant
from .results import OperationResult
from .actions import (
    inspect_update,
    extract_firmware,
    decrypt_firmware_file,
    encrypt_firmware_file,
    read_serial,
    set_serial,
    identify_bootloader,
)

__all__ = [
    # Parsing
    "parse_int",
    "parse_variant",
    # Results
    "OperationResult",
    # Actions
    "inspect_update",
    "extract_firmware",
    "decrypt_firmware_file",
    "encrypt_firmware_file",
    "read_serial",
    "set_serial",
    "identify_bootloader",
]
