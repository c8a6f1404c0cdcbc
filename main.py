#!/usr/bin/env python3
"""chip8-vm Command Line Interface.

Run CHIP-8 programs headlessly and print the final display and state.

Usage:
    python main.py roms/maze.ch8 --cycles 2000 --show-display
    python main.py --hex "6105 7103 F033 F265" --cycles 4
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from chip8_vm import Chip8VM, Chip8Error
from chip8_vm.loader import parse_hex
from chip8_vm.render import to_text


DEFAULT_ROM = "roms/maze.ch8"


def parse_keys(text: str) -> int:
    """Turn "1,A,f" into a keypad mask."""
    mask = 0
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        key = int(part, 16)
        if not 0 <= key <= 0xF:
            raise ValueError(f"Key out of range: {part}")
        mask |= 1 << key
    return mask


def main():
    parser = argparse.ArgumentParser(
        description="chip8-vm: CHIP-8 virtual machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a ROM for 5000 instructions and show the screen
    python main.py roms/maze.ch8 --cycles 5000 --show-display

    # Run inline hex with a fixed random seed
    python main.py --hex "C0FF 1200" --cycles 10 --seed 1

    # Hold keys 5 and A down for the whole run
    python main.py game.ch8 --keys 5,A
        """
    )

    parser.add_argument(
        "rom",
        nargs="?",
        help=f"Path to program image. Default: {DEFAULT_ROM}"
    )
    parser.add_argument(
        "--hex",
        type=str,
        help="Inline program as hex (whitespace ignored)"
    )
    parser.add_argument(
        "--cycles", "-n",
        type=int,
        default=Chip8VM.DEFAULT_CPU_HZ * 10,
        help="Instructions to execute. Default: 10 emulated seconds"
    )
    parser.add_argument(
        "--cpu-hz",
        type=int,
        default=Chip8VM.DEFAULT_CPU_HZ,
        help=f"Instructions per emulated second. Default: {Chip8VM.DEFAULT_CPU_HZ}"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        help="Safety limit on executed instructions"
    )
    parser.add_argument(
        "--keys", "-k",
        type=str,
        default="",
        help="Comma separated hex keys held down during the run"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the random number instruction"
    )
    parser.add_argument(
        "--show-display", "-d",
        action="store_true",
        help="Print the final display buffer"
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace execution to --cpu-hz against the wall clock"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (final registers only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    if args.rom and args.hex:
        parser.error("Give either a ROM path or --hex, not both")
    if args.cpu_hz < Chip8VM.TIMER_HZ:
        parser.error(f"--cpu-hz must be at least {Chip8VM.TIMER_HZ}")

    try:
        keypad = parse_keys(args.keys)
    except ValueError as e:
        parser.error(str(e))

    vm = Chip8VM(cpu_hz=args.cpu_hz, max_cycles=args.max_cycles, seed=args.seed)

    try:
        if args.hex:
            vm.load_program(parse_hex(args.hex))
            if not args.quiet:
                print("Running inline program")
        else:
            rom = args.rom or DEFAULT_ROM
            if not args.quiet:
                print(f"Loading rom {rom}")
            vm.load_rom(rom)
    except Chip8Error as e:
        print(f"Error: {e}")
        return 1

    frames = 0

    def on_frame(display):
        nonlocal frames
        frames += 1

    exit_code = 0
    try:
        if args.realtime:
            period = 1.0 / args.cpu_hz
            for _ in range(args.cycles):
                started = time.perf_counter()
                vm.run(1, keypad=keypad, on_frame=on_frame)
                remaining = period - (time.perf_counter() - started)
                if remaining > 0:
                    time.sleep(remaining)
        else:
            vm.run(args.cycles, keypad=keypad, on_frame=on_frame)
    except (Chip8Error, RuntimeError) as e:
        print(f"Execution error: {e}")
        exit_code = 1

    if args.quiet:
        for reg, value in vm.dump_registers().items():
            if value != 0:
                print(f"{reg}={value}")
        return exit_code

    summary = vm.get_summary()
    print()
    print(f"Cycles: {summary['cycles']}")
    print(f"Halted: {summary['halted']}")
    print(f"Frames: {frames}")
    print(f"PC: 0x{summary['pc']:03X}  I: 0x{summary['index_register']:03X}  SP: {summary['sp']}")
    print(f"Timers: delay={summary['delay_timer']} sound={summary['sound_timer']}")
    print(f"Registers: {summary['registers']}")
    if args.show_display:
        print()
        print(to_text(vm.display))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
