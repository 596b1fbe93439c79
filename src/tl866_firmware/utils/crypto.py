"""
Shared transformation helpers for the TL866 firmware block scheme.

Every encrypted block is 80 bytes and carries 64 bytes of firmware plus
16 bytes of random padding. A block is turned into plaintext by:

1. XOR with a 256-byte table, rotating index +1 per byte
2. Shifting the whole block three bits right (one continuous bit stream)
3. Swapping byte i with byte len-1-i for every fourth i only

Encryption runs the inverse steps in reverse order. The partial swap is
what the bootloader expects; it is not a full reversal.
"""

from __future__ import annotations

from ..errors import SizeError, require_size

BLOCK_SIZE = 0x50
PLAIN_BLOCK_SIZE = 0x40
PADDING_SIZE = BLOCK_SIZE - PLAIN_BLOCK_SIZE
XOR_TABLE_SIZE = 0x100
XOR_TABLE_START = 0x1EEDF
XOR_TABLE_WINDOW = 16
XOR_TABLE_STRIDE = 320


class Crypto:
    """Block transform primitives (all return new bytes)."""

    @staticmethod
    def xor_with_table(data: bytes, table: bytes, index: int) -> bytes:
        """XOR byte i with ``table[(index + i) & 0xFF]``."""
        return bytes(byte ^ table[(index + i) & 0xFF] for i, byte in enumerate(data))

    @staticmethod
    def shift_right_3(data: bytes) -> bytes:
        """Shift the buffer three bits right; byte 0 gets zero top bits."""
        value = int.from_bytes(data, "big") >> 3
        return value.to_bytes(len(data), "big")

    @staticmethod
    def shift_left_3(data: bytes) -> bytes:
        """Shift the buffer three bits left; the last byte gets zero low bits."""
        mask = (1 << (8 * len(data))) - 1
        value = (int.from_bytes(data, "big") << 3) & mask
        return value.to_bytes(len(data), "big")

    @staticmethod
    def mirror_swap(data: bytes) -> bytes:
        """Swap byte i and byte len-1-i for i = 0, 4, 8, ... < len/2."""
        out = bytearray(data)
        last = len(out) - 1
        for i in range(0, len(out) // 2, 4):
            out[i], out[last - i] = out[last - i], out[i]
        return bytes(out)

    @classmethod
    def decrypt_block(cls, block: bytes, table: bytes, index: int) -> bytes:
        """Turn one 80-byte encrypted block into 64 bytes of firmware."""
        require_size(block, BLOCK_SIZE, "encrypted block")
        data = cls.xor_with_table(block, table, index)
        data = cls.shift_right_3(data)
        data = cls.mirror_swap(data)
        return data[:PLAIN_BLOCK_SIZE]

    @classmethod
    def encrypt_block(cls, block: bytes, table: bytes, index: int, padding: bytes) -> bytes:
        """Turn 64 bytes of firmware plus 16 padding bytes into an encrypted block."""
        require_size(block, PLAIN_BLOCK_SIZE, "plaintext block")
        require_size(padding, PADDING_SIZE, "block padding")
        data = cls.mirror_swap(bytes(block) + bytes(padding))
        data = cls.shift_left_3(data)
        return cls.xor_with_table(data, table, index)

    @staticmethod
    def extract_xor_table(image: bytes) -> bytes:
        """
        Recover the 256-byte XOR table from an encrypted firmware image.

        The table is stored bit-complemented in sixteen 16-byte windows,
        320 bytes apart, starting at XOR_TABLE_START. Only the windows are
        complemented; ``image`` itself is left untouched.
        """
        last = XOR_TABLE_START + (XOR_TABLE_SIZE // XOR_TABLE_WINDOW - 1) * XOR_TABLE_STRIDE + XOR_TABLE_WINDOW
        if len(image) < last:
            raise SizeError(
                f"image too short for XOR table: need {last:#x} bytes, got {len(image):#x}",
                stage="xor table",
            )
        table = bytearray()
        for window in range(XOR_TABLE_SIZE // XOR_TABLE_WINDOW):
            start = XOR_TABLE_START + window * XOR_TABLE_STRIDE
            table.extend(byte ^ 0xFF for byte in image[start:start + XOR_TABLE_WINDOW])
        return bytes(table)
