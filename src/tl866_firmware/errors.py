"""
Exception hierarchy for TL866 firmware handling.

Every error raised by the codec and the package loader derives from
Tl866FirmwareError so callers (CLI, workflow actions) can catch one type.
"""

from typing import Optional


class Tl866FirmwareError(Exception):
    """Base exception for firmware codec operations."""

    def __init__(self, message: str, variant: Optional[str] = None, stage: Optional[str] = None) -> None:
        self.variant = variant
        self.stage = stage
        context = []
        if variant:
            context.append(f"variant={variant}")
        if stage:
            context.append(f"stage={stage}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class SizeError(Tl866FirmwareError):
    """Raised when a buffer does not have the exact length the format requires."""


class ChecksumError(Tl866FirmwareError):
    """Raised when a stage-1 descrambled image fails its CRC-32 check."""


class DecryptionError(Tl866FirmwareError):
    """Raised when decrypted firmware lacks the expected signature."""


class NotLoadedError(Tl866FirmwareError):
    """Raised when an accessor is used before a package was loaded."""


class RetryBudgetExceeded(Tl866FirmwareError):
    """Raised when serial checksum rejection sampling runs out of attempts."""


def require_size(data: bytes, expected: int, what: str, variant: Optional[str] = None) -> None:
    """Raise SizeError unless ``len(data) == expected``."""
    if len(data) != expected:
        raise SizeError(
            f"{what} must be exactly {expected:#x} bytes, got {len(data):#x}",
            variant=variant,
            stage="size check",
        )
