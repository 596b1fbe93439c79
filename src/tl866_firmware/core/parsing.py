"""
Centralized parsing helpers for CLI values.

The CLI imports these helpers rather than re-implementing them.
"""

from typing import Optional

from tl866_firmware.variants import DeviceVariant

VARIANT_ALIASES = {
    "a": DeviceVariant.A,
    "tl866a": DeviceVariant.A,
    "cs": DeviceVariant.CS,
    "tl866cs": DeviceVariant.CS,
}


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Parse an integer from string, supporting multiple formats.

    Accepts:
        - Decimal: "4096"
        - Hex with 0x prefix: "0x1000" or "0X1000"
        - Hex with h suffix: "1000h" or "1000H"
        - None or blank for "not given"

    Raises:
        ValueError: If value cannot be parsed.
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    try:
        if value.lower().startswith("0x"):
            return int(value, 16)
        if value.lower().endswith("h"):
            return int(value[:-1], 16)
        return int(value)
    except ValueError:
        raise ValueError(
            f"Invalid number '{value}'. Use decimal (4096), hex (0x1000), or suffix (1000h)."
        )


def parse_variant(value: str) -> DeviceVariant:
    """
    Parse a device variant name.

    Accepts "A", "CS", "TL866A" or "TL866CS" in any case.

    Raises:
        ValueError: If the name is not recognized.
    """
    key = (value or "").strip().lower().replace("-", "")
    if key not in VARIANT_ALIASES:
        raise ValueError(
            f"Unknown variant '{value}'. Valid: {', '.join(sorted(VARIANT_ALIASES))}"
        )
    return VARIANT_ALIASES[key]
