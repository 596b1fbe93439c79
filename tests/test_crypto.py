"""Tests for the block transform primitives."""

import random

import pytest

from tl866_firmware.errors import SizeError
from tl866_firmware.firmware_codec import ENCRYPTED_FIRMWARE_SIZE
from tl866_firmware.utils.crypto import (
    BLOCK_SIZE,
    PADDING_SIZE,
    PLAIN_BLOCK_SIZE,
    XOR_TABLE_START,
    Crypto,
)


class TestBitStreamShift:
    """Three-bit shifts run across byte boundaries."""

    def test_shift_right_carries_low_bits_into_next_byte(self):
        assert Crypto.shift_right_3(b"\xff\x00") == b"\x1f\xe0"

    def test_shift_right_zero_fills_first_byte(self):
        assert Crypto.shift_right_3(b"\xff") == b"\x1f"

    def test_shift_left_carries_high_bits_into_previous_byte(self):
        assert Crypto.shift_left_3(b"\x01\xff") == b"\x0f\xf8"

    def test_shift_left_drops_top_bits_of_first_byte(self):
        assert Crypto.shift_left_3(b"\xe0\x00") == b"\x00\x00"

    def test_shifts_preserve_length(self):
        data = bytes(range(80))
        assert len(Crypto.shift_right_3(data)) == 80
        assert len(Crypto.shift_left_3(data)) == 80


class TestMirrorSwap:
    """Only every fourth pair is swapped."""

    def test_swaps_stride_four_positions(self):
        out = Crypto.mirror_swap(bytes(range(80)))
        assert out[0] == 79 and out[79] == 0
        assert out[4] == 75 and out[75] == 4
        assert out[36] == 43 and out[43] == 36

    def test_leaves_other_positions_alone(self):
        out = Crypto.mirror_swap(bytes(range(80)))
        for i in (1, 2, 3, 5, 37, 40, 41, 78):
            assert out[i] == i

    def test_is_not_a_full_reversal(self):
        data = bytes(range(80))
        assert Crypto.mirror_swap(data) != data[::-1]

    def test_is_its_own_inverse(self):
        data = bytes(range(80))
        assert Crypto.mirror_swap(Crypto.mirror_swap(data)) == data


class TestXorWithTable:
    def test_index_wraps_at_256(self):
        table = bytes(range(256))
        assert Crypto.xor_with_table(b"\x00\x00\x00\x00", table, 254) == bytes([254, 255, 0, 1])

    def test_is_symmetric(self):
        table = random.Random(1).randbytes(256)
        data = b"firmware block"
        assert Crypto.xor_with_table(Crypto.xor_with_table(data, table, 9), table, 9) == data


class TestBlockRoundTrip:
    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_decrypt_inverts_encrypt(self, seed):
        rng = random.Random(seed)
        block = rng.randbytes(PLAIN_BLOCK_SIZE)
        table = rng.randbytes(256)
        index = rng.randrange(256)
        padding = rng.randbytes(PADDING_SIZE)

        encrypted = Crypto.encrypt_block(block, table, index, padding)
        assert len(encrypted) == BLOCK_SIZE
        assert Crypto.decrypt_block(encrypted, table, index) == block

    def test_padding_does_not_reach_plaintext(self):
        rng = random.Random(7)
        block = rng.randbytes(PLAIN_BLOCK_SIZE)
        table = rng.randbytes(256)
        one = Crypto.encrypt_block(block, table, 0x15, b"\x00" * PADDING_SIZE)
        two = Crypto.encrypt_block(block, table, 0x15, b"\xfe" * PADDING_SIZE)
        assert one != two
        assert Crypto.decrypt_block(one, table, 0x15) == Crypto.decrypt_block(two, table, 0x15) == block

    def test_zero_block_with_zero_table_stays_zero(self):
        out = Crypto.encrypt_block(b"\x00" * 64, b"\x00" * 256, 0, b"\x00" * 16)
        assert out == b"\x00" * 80

    def test_wrong_sizes_raise(self):
        table = b"\x00" * 256
        with pytest.raises(SizeError):
            Crypto.decrypt_block(b"\x00" * 64, table, 0)
        with pytest.raises(SizeError):
            Crypto.encrypt_block(b"\x00" * 80, table, 0, b"\x00" * 16)
        with pytest.raises(SizeError):
            Crypto.encrypt_block(b"\x00" * 64, table, 0, b"\x00" * 15)


class TestBlockKnownAnswer:
    """Fixed vectors for one block at the firmware start index."""

    INDEX = 0x15

    def _table(self) -> bytes:
        table = bytearray(256)
        table[0x15] = 0xFF    # block byte 0
        table[0x16] = 0x80    # block byte 1
        table[0x60] = 0x08    # block byte 75
        return bytes(table)

    def test_decrypt_block(self):
        expected = bytearray(PLAIN_BLOCK_SIZE)
        expected[1] = 0xF0
        expected[4] = 0x01
        assert Crypto.decrypt_block(b"\x00" * BLOCK_SIZE, self._table(), self.INDEX) == bytes(expected)

    def test_decrypt_block_with_shifted_index(self):
        expected = bytearray(PLAIN_BLOCK_SIZE)
        expected[1] = 0x1F
        expected[2] = 0xF0
        out = Crypto.decrypt_block(b"\x00" * BLOCK_SIZE, self._table(), self.INDEX - 1)
        assert out == bytes(expected)

    def test_encrypt_block(self):
        block = bytearray(PLAIN_BLOCK_SIZE)
        block[4] = 0x01
        padding = b"\xff" + b"\x00" * (PADDING_SIZE - 1)
        expected = bytearray(BLOCK_SIZE)
        expected[0] = 0xFF
        expected[1] = 0x80
        expected[63] = 0x07
        expected[64] = 0xF8
        out = Crypto.encrypt_block(bytes(block), self._table(), self.INDEX, padding)
        assert out == bytes(expected)
        assert Crypto.decrypt_block(out, self._table(), self.INDEX) == bytes(block)


class TestExtractXorTable:
    def _image_with_table(self, table: bytes) -> bytearray:
        image = bytearray(ENCRYPTED_FIRMWARE_SIZE)
        for window in range(16):
            start = XOR_TABLE_START + window * 320
            image[start:start + 16] = bytes(b ^ 0xFF for b in table[window * 16:window * 16 + 16])
        return image

    def test_reads_complemented_windows(self):
        table = random.Random(11).randbytes(256)
        assert Crypto.extract_xor_table(bytes(self._image_with_table(table))) == table

    def test_does_not_modify_input(self):
        image = self._image_with_table(bytes(range(256)))
        before = bytes(image)
        Crypto.extract_xor_table(image)
        assert bytes(image) == before

    def test_short_image_raises(self):
        with pytest.raises(SizeError):
            Crypto.extract_xor_table(b"\x00" * XOR_TABLE_START)
