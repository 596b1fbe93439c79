"""Tests for CRC primitives."""

from tl866_firmware.checksums import crc16, crc32


def test_crc32_check_value():
    assert crc32(b"123456789") == 0xCBF43926


def test_crc32_detects_single_bit_flip():
    data = bytearray(range(256)) * 4
    original = crc32(bytes(data))
    data[513] ^= 0x04
    assert crc32(bytes(data)) != original


def test_crc16_check_value():
    """CRC-16/ARC catalogue check value."""
    assert crc16(b"123456789") == 0xBB3D


def test_crc16_empty_and_zero_input():
    assert crc16(b"") == 0
    assert crc16(b"\x00" * 32) == 0


def test_crc16_appended_little_endian_gives_zero_residue():
    data = b"TL866CS serial record body"
    crc = crc16(data)
    assert crc16(data + bytes([crc & 0xFF, crc >> 8])) == 0
