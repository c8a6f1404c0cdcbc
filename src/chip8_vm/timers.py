"""Delay and sound timer handling.

The timers count down at 60 Hz no matter how fast instructions run. The
VM does not keep time itself: each step is told whether it falls on a
timer tick, and TickScheduler decides that for a given instruction rate.
"""

from .state import MachineState


TIMER_HZ = 60


def decrement_timers(state: MachineState) -> None:
    """Count both timers down by one, stopping at zero."""
    if state.delay_timer > 0:
        state.delay_timer -= 1
    if state.sound_timer > 0:
        state.sound_timer -= 1


class TickScheduler:
    """Spreads timer_hz ticks evenly over cpu_hz steps.

    Integer accumulator: each call adds timer_hz, and a tick fires every
    time the total reaches cpu_hz. Over any cpu_hz consecutive calls
    exactly timer_hz of them tick.

    Usage:
        ticks = TickScheduler(cpu_hz=500)
        vm.step(keypad, tick=ticks.next())
    """

    def __init__(self, cpu_hz: int, timer_hz: int = TIMER_HZ):
        if timer_hz <= 0 or cpu_hz <= 0:
            raise ValueError("cpu_hz and timer_hz must be positive")
        if cpu_hz < timer_hz:
            raise ValueError(f"cpu_hz ({cpu_hz}) must be at least timer_hz ({timer_hz})")
        self.cpu_hz = cpu_hz
        self.timer_hz = timer_hz
        self._acc = 0

    def next(self) -> bool:
        """Advance one step; True if this step is a timer tick."""
        self._acc += self.timer_hz
        if self._acc >= self.cpu_hz:
            self._acc -= self.cpu_hz
            return True
        return False

    def reset(self) -> None:
        self._acc = 0
