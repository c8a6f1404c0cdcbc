"""Tests for program loading."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.errors import LoadError
from chip8_vm.loader import GLYPHS, create_initial_state, parse_hex, read_rom
from chip8_vm.state import MAX_PROGRAM_SIZE, MEMORY_SIZE, PROGRAM_START


class TestGlyphTable:
    """Test the built-in hex digit glyphs."""

    def test_glyph_table_size(self):
        """16 glyphs of 5 rows each."""
        assert len(GLYPHS) == 80

    def test_glyph_zero_and_f(self):
        assert GLYPHS[0:5] == bytes([0xF0, 0x90, 0x90, 0x90, 0xF0])
        assert GLYPHS[75:80] == bytes([0xF0, 0x80, 0xF0, 0x80, 0x80])

    def test_glyphs_use_high_nibble_only(self):
        assert all(b & 0x0F == 0 for b in GLYPHS)


class TestCreateInitialState:
    """Test create_initial_state."""

    def test_glyphs_installed_at_zero(self):
        state = create_initial_state(b"")
        assert bytes(state.memory[0:80]) == GLYPHS

    def test_program_copied_to_0x200(self):
        program = bytes([0x61, 0x05, 0x71, 0x03])
        state = create_initial_state(program)
        assert bytes(state.memory[PROGRAM_START:PROGRAM_START + 4]) == program
        assert state.memory[PROGRAM_START + 4] == 0

    def test_pc_at_program_start(self):
        state = create_initial_state(b"\x00\xE0")
        assert state.pc == 0x200

    def test_other_fields_zeroed(self):
        state = create_initial_state(b"\x12\x00")
        assert state.registers == [0] * 16
        assert state.index_register == 0
        assert state.sp == 0
        assert state.delay_timer == 0
        assert state.sound_timer == 0
        assert not any(any(row) for row in state.display)
        assert all(b == 0 for b in state.memory[80:PROGRAM_START])

    def test_largest_program_fits(self):
        program = bytes([0xAB]) * MAX_PROGRAM_SIZE
        state = create_initial_state(program)
        assert state.memory[MEMORY_SIZE - 1] == 0xAB

    def test_oversized_program_rejected(self):
        """Programs larger than 3584 bytes are a load error."""
        with pytest.raises(LoadError, match="3584"):
            create_initial_state(bytes(MAX_PROGRAM_SIZE + 1))

    def test_load_error_is_value_error(self):
        with pytest.raises(ValueError):
            create_initial_state(bytes(MAX_PROGRAM_SIZE + 1))


class TestReadRom:
    """Test reading program images from disk."""

    def test_read_rom(self, tmp_path):
        rom = tmp_path / "test.ch8"
        rom.write_bytes(b"\x00\xE0\x12\x02")
        assert read_rom(rom) == b"\x00\xE0\x12\x02"

    def test_missing_rom_is_error(self, tmp_path):
        """A missing file is reported, not treated as an empty program."""
        with pytest.raises(LoadError, match="Cannot read program"):
            read_rom(tmp_path / "missing.ch8")

    def test_directory_is_error(self, tmp_path):
        with pytest.raises(LoadError):
            read_rom(tmp_path)


class TestParseHex:
    """Test hex listing parsing."""

    def test_parse_words(self):
        assert parse_hex("6105 7103\nF033  F265") == bytes.fromhex("61057103F033F265")

    def test_parse_prefixed(self):
        assert parse_hex("0x00E0") == b"\x00\xE0"

    def test_parse_prefixed_words(self):
        assert parse_hex("0x6105 0X7103 F033") == bytes.fromhex("61057103F033")

    def test_odd_digits_rejected(self):
        with pytest.raises(LoadError):
            parse_hex("610")

    def test_non_hex_rejected(self):
        with pytest.raises(LoadError):
            parse_hex("ZZZZ")
