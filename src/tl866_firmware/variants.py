"""
Device variants and their per-variant layout in update.dat and in flash.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class DeviceVariant(Enum):
    """Supported programmer hardware revisions."""
    A = "A"
    CS = "CS"

    @property
    def layout(self) -> "VariantLayout":
        return VARIANT_LAYOUTS[self]

    @property
    def label(self) -> str:
        return self.layout.label


@dataclass(frozen=True)
class VariantLayout:
    """Fixed offsets for one variant."""

    label: str
    key_offset: int
    firmware_offset: int
    crc_offset: int
    erase_offset: int
    bootloader_crc: int


VARIANT_LAYOUTS: Dict[DeviceVariant, VariantLayout] = {
    DeviceVariant.A: VariantLayout(
        label="TL866A",
        key_offset=0x14,
        firmware_offset=0xA1C,
        crc_offset=4,
        erase_offset=9,
        bootloader_crc=0x95AB,
    ),
    DeviceVariant.CS: VariantLayout(
        label="TL866CS",
        key_offset=0x518,
        firmware_offset=0x2671C,
        crc_offset=12,
        erase_offset=17,
        bootloader_crc=0x20D2,
    ),
}
