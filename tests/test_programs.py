"""Integration tests running whole programs through Chip8VM."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm import Chip8VM, LoadError, MachineFault
from chip8_vm.loader import parse_hex


@pytest.fixture
def vm():
    return Chip8VM(seed=7)


class TestBcdProgram:
    """Set V1, add, store decimal digits at I, load them back."""

    def test_bcd_of_v0(self, vm):
        """F033 converts V0, which is still 0, so V1's 8 is overwritten."""
        vm.load_program(parse_hex("6105 7103 F033 F265"))
        vm.run(4)

        assert vm.state.index_register == 0
        assert list(vm.state.memory[0:3]) == [0, 0, 0]
        assert vm.state.registers[:3] == [0, 0, 0]
        assert vm.get_pc() == 0x208
        assert vm.get_cycle_count() == 4

    def test_bcd_round_trip(self, vm):
        vm.load_program(parse_hex("6105 7103 F133 F265"))
        vm.run(4)

        i = vm.state.index_register
        assert list(vm.state.memory[i:i + 3]) == [0, 0, 8]
        assert vm.state.registers[:3] == [0, 0, 8]
        assert vm.get_pc() == 0x208


class TestClearScreenProgram:
    """00E0 always leaves a blank display."""

    def test_clear_after_drawing(self, vm):
        # Draw glyphs 0 and 8, then clear
        vm.load_program(parse_hex("D015 6808 F829 6010 D015 00E0"))
        frames = []
        vm.run(6, on_frame=lambda display: frames.append([list(r) for r in display]))

        assert any(any(row) for row in frames[0])
        assert not any(any(row) for row in vm.display)
        assert len(frames) == 3


class TestSubroutines:
    """2NNN / 00EE."""

    def test_call_and_return(self, vm):
        # 200: call 0x206; 202: V1 = 1; 204: spin; 206: V0 = 5; 208: return
        vm.load_program(parse_hex("2206 6101 1204 6005 00EE"))

        vm.step()
        assert vm.get_pc() == 0x206
        assert vm.state.sp == 1
        vm.step()
        vm.step()
        assert vm.get_pc() == 0x202
        assert vm.state.sp == 0
        vm.step()

        assert vm.get_register(0) == 5
        assert vm.get_register(1) == 1

    def test_nested_calls(self, vm):
        # 200: call 206; 202: spin; 206: call 20C; 208: V2 = 2; 20A: ret; 20C: V3 = 3; 20E: ret
        vm.load_program(parse_hex("2206 1202 0000 220C 6202 00EE 6303 00EE"))
        vm.run(7)
        assert vm.get_pc() == 0x202
        assert vm.state.sp == 0
        assert vm.get_register(2) == 2
        assert vm.get_register(3) == 3

    def test_runaway_recursion_faults(self, vm):
        vm.load_program(parse_hex("2200"))
        with pytest.raises(MachineFault, match="overflow"):
            vm.run(100)
        assert vm.is_halted() is True
        assert vm.get_cycle_count() == 15


class TestCountingLoop:
    """A loop using skips and jumps."""

    def test_count_to_ten(self, vm):
        # 200: V0 = 0; 202: V0 += 1; 204: skip if V0 == 10; 206: jump 202; 208: spin
        vm.load_program(parse_hex("6000 7001 300A 1202 1208"))
        vm.run(1 + 10 * 3)
        assert vm.get_register(0) == 10
        assert vm.get_pc() == 0x208

    def test_multiply_by_addition(self, vm):
        """7 * 6 with 8XY4 in a loop."""
        # V0 = 0; V1 = 7; V2 = 6; loop: V0 += V1; V2 -= 1 (7XFF); skip if V2 == 0; jump loop
        vm.load_program(parse_hex("6000 6107 6206 8014 72FF 3200 1206 120E"))
        vm.run(3 + 6 * 4)
        assert vm.get_register(0) == 42
        assert vm.get_register(0xF) == 0


class TestKeyWaitProgram:
    """FX0A blocks until a key arrives."""

    def test_wait_then_continue(self, vm):
        vm.load_program(parse_hex("F50A 6101"))
        for _ in range(10):
            vm.step(keypad=0)
        assert vm.get_pc() == 0x200
        assert vm.get_cycle_count() == 10

        vm.step(keypad=1 << 0xC)
        assert vm.get_register(5) == 0xC
        vm.step()
        assert vm.get_register(1) == 1


class TestUnrecognizedOpcodes:
    """Unknown opcodes do not stop execution."""

    def test_program_continues(self, vm):
        vm.load_program(parse_hex("0123 8AB9 6042"))
        vm.run(3)
        assert vm.get_register(0) == 0x42
        assert vm.is_halted() is False


class TestFaults:
    """Fatal conditions halt the VM."""

    def test_running_off_memory(self, vm):
        vm.load_program(parse_hex("1FFE"))
        vm.state.memory[0xFFE:0x1000] = bytes([0x00, 0x00])
        vm.step()
        vm.step()
        with pytest.raises(MachineFault, match="fetch"):
            vm.step()
        assert vm.is_halted() is True

    def test_jump_v0_out_of_memory(self, vm):
        vm.load_program(parse_hex("60FF BFFF"))
        vm.run(2)
        assert vm.get_pc() == 0x10FE
        with pytest.raises(MachineFault) as info:
            vm.step()
        assert info.value.address == 0x10FE


class TestVmLifecycle:
    """Load and run bookkeeping."""

    def test_step_without_program(self):
        with pytest.raises(RuntimeError, match="No program loaded"):
            Chip8VM().step()

    def test_accessors_without_program(self):
        vm = Chip8VM()
        assert vm.get_cycle_count() == 0
        assert vm.is_halted() is True
        assert vm.sound_on is False
        assert vm.get_summary()["cycles"] == 0

    def test_max_cycles(self):
        vm = Chip8VM(max_cycles=10)
        vm.load_program(parse_hex("1200"))
        with pytest.raises(RuntimeError, match="Max cycles"):
            vm.run(11)
        assert vm.get_cycle_count() == 10

    def test_reload_resets_state(self, vm):
        vm.load_program(parse_hex("6042 1202"))
        vm.run(5)
        vm.load_program(parse_hex("1200"))
        assert vm.get_register(0) == 0
        assert vm.get_cycle_count() == 0
        assert vm.get_pc() == 0x200

    def test_load_rom_file(self, vm, tmp_path):
        rom = tmp_path / "prog.ch8"
        rom.write_bytes(parse_hex("6A0B 1202"))
        vm.load_rom(rom)
        vm.run(2)
        assert vm.get_register(0xA) == 0x0B

    def test_load_missing_rom(self, vm, tmp_path):
        with pytest.raises(LoadError):
            vm.load_rom(tmp_path / "nope.ch8")
        assert vm.state is None

    def test_step_result(self, vm):
        vm.load_program(parse_hex("A200 D015"))
        first = vm.step()
        second = vm.step()
        assert (first.cycle, first.address, first.opcode, first.key) == (0, 0x200, 0xA200, "OP_LD_I")
        assert first.display_changed is False
        assert (second.cycle, second.address, second.key) == (1, 0x202, "OP_DRW")
        assert second.display_changed is True

    def test_summary(self, vm):
        vm.load_program(parse_hex("6103 A200 D015 1206"))
        vm.run(4)
        summary = vm.get_summary()
        assert summary["cycles"] == 4
        assert summary["halted"] is False
        assert summary["registers"]["V1"] == 3
        assert summary["pc"] == 0x206
        assert summary["pixels_on"] > 0
