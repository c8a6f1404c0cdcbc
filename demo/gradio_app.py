"""chip8-vm Interactive Demo.

A Gradio web interface for running CHIP-8 programs and viewing the screen.

Usage:
    cd /path/to/chip8-vm
    python demo/gradio_app.py

Features:
    - Pick a built-in example or paste a program as hex
    - Upload a .ch8 ROM
    - Run a fixed number of instructions with keys held down
    - See the display, registers and timers afterwards
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from chip8_vm import Chip8VM, Chip8Error
from chip8_vm.loader import parse_hex
from chip8_vm.render import to_array


DISPLAY_SCALE = 8


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Digits 0-9": """00E0 6000 6101 6201
F029 D125 7105 7001
300A 1208 1214""",

    "Show 137": """6089 A300 F033 F265
630A 640A F029 D345
7305 F129 D345 7305
F229 D345 121C""",

    "Maze": """A21E C201 3201 A21A
D014 7004 3040 1200
6000 7104 3120 1200
1218 8040 2010 1020
4080""",

    "Custom": ""
}

KEY_CHOICES = [f"{k:X}" for k in range(16)]


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str, rom_file, keys: list, cycles: int, cpu_hz: int, seed: int) -> tuple:
    """Execute a program and return results.

    Args:
        program: Hex listing (ignored when a ROM file is uploaded)
        rom_file: Uploaded ROM path or None
        keys: Hex key names held down for the run
        cycles: Instructions to execute
        cpu_hz: Emulated instruction rate
        seed: Random seed for CXNN

    Returns:
        Tuple of (display_image, summary_text, registers_text)
    """
    vm = Chip8VM(cpu_hz=int(cpu_hz), seed=int(seed))

    try:
        if rom_file is not None:
            vm.load_rom(rom_file)
        elif program.strip():
            vm.load_program(parse_hex(program))
        else:
            return None, "Error: No program provided", ""
    except Chip8Error as e:
        return None, f"Error: {e}", ""

    keypad = 0
    for key in keys or []:
        keypad |= 1 << int(key, 16)

    frames = []
    try:
        vm.run(int(cycles), keypad=keypad, on_frame=frames.append)
    except (Chip8Error, RuntimeError) as e:
        error_msg = str(e)
    else:
        error_msg = None

    summary = vm.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Cycles: {summary['cycles']}",
        f"Halted: {'Yes' if summary['halted'] else 'No'}",
        f"Display updates: {len(frames)}",
        f"Pixels on: {summary['pixels_on']}",
        f"Sound: {'on' if vm.sound_on else 'off'}",
    ]
    if error_msg:
        summary_lines.append(f"\nRuntime: {error_msg}")
    summary_text = "\n".join(summary_lines)

    reg_lines = [
        "REGISTERS",
        "=" * 30,
    ]
    for reg, value in summary["registers"].items():
        marker = " *" if value != 0 else ""
        reg_lines.append(f"  {reg}: 0x{value:02X} {value:>4}{marker}")
    reg_lines.append("")
    reg_lines.append(f"  PC: 0x{summary['pc']:03X}")
    reg_lines.append(f"  I:  0x{summary['index_register']:03X}")
    reg_lines.append(f"  SP: {summary['sp']}")
    reg_lines.append(f"  DT: {summary['delay_timer']}")
    reg_lines.append(f"  ST: {summary['sound_timer']}")
    registers_text = "\n".join(reg_lines)

    return to_array(vm.display, scale=DISPLAY_SCALE), summary_text, registers_text


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="chip8-vm Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # chip8-vm: CHIP-8 Virtual Machine

        Runs a program for a fixed number of instructions, with timers ticking
        at 60 Hz relative to the chosen instruction rate, and shows the
        64x32 display afterwards.
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Digits 0-9",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Digits 0-9"],
                    label="Program (hex)",
                    lines=8,
                    placeholder="00E0 A200 ..."
                )

                rom_input = gr.File(
                    label="Or upload a ROM",
                    type="filepath"
                )

                gr.Markdown("### Settings")

                with gr.Row():
                    cycles = gr.Slider(
                        minimum=1,
                        maximum=20000,
                        value=1000,
                        step=1,
                        label="Cycles"
                    )
                    cpu_hz = gr.Slider(
                        minimum=60,
                        maximum=2000,
                        value=Chip8VM.DEFAULT_CPU_HZ,
                        step=10,
                        label="Instructions per second"
                    )

                with gr.Row():
                    keys = gr.CheckboxGroup(
                        choices=KEY_CHOICES,
                        label="Keys held"
                    )
                    seed = gr.Number(
                        value=0,
                        precision=0,
                        label="Random seed"
                    )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                display_output = gr.Image(
                    label="Display",
                    image_mode="L",
                    interactive=False
                )
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Registers",
                        lines=10,
                        interactive=False
                    )

        with gr.Accordion("Instruction Reference", open=False):
            gr.Markdown("""
            | Opcode | Effect |
            |--------|--------|
            | `00E0` | Clear display |
            | `00EE` | Return from subroutine |
            | `1NNN` / `2NNN` | Jump / call NNN |
            | `3XNN` / `4XNN` | Skip if VX == NN / != NN |
            | `5XY0` / `9XY0` | Skip if VX == VY / != VY |
            | `6XNN` / `7XNN` | VX = NN / VX += NN |
            | `8XY0`-`8XYE` | Register ALU, VF = carry/borrow/shifted bit |
            | `ANNN` / `BNNN` | I = NNN / jump V0 + NNN |
            | `CXNN` | VX = random & NN |
            | `DXYN` | XOR sprite, VF = collision |
            | `EX9E` / `EXA1` | Skip if key VX down / up |
            | `FX07` `FX15` `FX18` | Read delay / set delay / set sound |
            | `FX0A` | Wait for key |
            | `FX1E` `FX29` `FX33` | I += VX / glyph address / BCD |
            | `FX55` / `FX65` | Store / load V0..VX at I |
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, rom_input, keys, cycles, cpu_hz, seed],
            outputs=[display_output, summary_output, registers_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
