"""
Checksum primitives used by the TL866 update and flash formats.

- CRC-32 guards each stage-1 descrambled firmware image in update.dat.
- CRC-16/ARC guards the serial record and identifies the bootloader.
"""

import binascii


def crc32(data: bytes) -> int:
    """
    Calculate the standard (zlib) CRC-32.

    The vendor tool runs the table-driven CRC with a 0xFFFFFFFF seed and
    complements the result, which is the same value.
    """
    return binascii.crc32(data) & 0xFFFFFFFF


def crc16(data: bytes) -> int:
    """
    Calculate CRC-16/ARC (reflected poly 0xA001, init 0, no final xor).

    Appending the result low byte first makes the CRC of the whole buffer
    zero, which is how a serial record is recognised as valid.

    Args:
        data: Bytes to calculate checksum over

    Returns:
        16-bit CRC value
    """
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc
