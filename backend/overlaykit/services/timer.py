"""
Stopwatch / countdown state machine for TIMER elements.

A timer is Stopped while ``running_since_utc`` is None and Running
otherwise. Elapsed time accumulates in ``accumulated_elapsed_ms`` every time
the timer stops; the displayed value is always derived, never stored.
All transitions are pure and take ``now`` explicitly.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _ms_between(start: datetime, end: datetime) -> int:
    return int((as_utc(end) - as_utc(start)).total_seconds() * 1000)


@dataclass(frozen=True)
class TimerState:
    running_since_utc: datetime | None = None
    accumulated_elapsed_ms: int = 0
    duration: int = 0
    count_down: bool = False

    @property
    def is_running(self) -> bool:
        return self.running_since_utc is not None


def elapsed_ms(state: TimerState, now: datetime) -> int:
    elapsed = state.accumulated_elapsed_ms
    if state.running_since_utc is not None:
        elapsed += _ms_between(state.running_since_utc, now)
    return elapsed


def display_ms(state: TimerState, now: datetime) -> int:
    """Remaining time for a countdown, elapsed time otherwise.

    A countdown past its target goes negative; clamping is a rendering concern.
    """
    elapsed = elapsed_ms(state, now)
    if state.count_down:
        return state.duration - elapsed
    return elapsed


def toggle(state: TimerState, now: datetime) -> TimerState:
    if state.is_running:
        return replace(
            state,
            running_since_utc=None,
            accumulated_elapsed_ms=elapsed_ms(state, now),
        )
    return replace(state, running_since_utc=as_utc(now))


def reset() -> TimerState:
    return TimerState(running_since_utc=None, accumulated_elapsed_ms=0, duration=0, count_down=False)


def set_direction(state: TimerState, count_down: bool, now: datetime) -> TimerState:
    """Switch between count-up and countdown; a switch always stops the timer.

    Count-up -> countdown freezes the elapsed time into ``duration``.
    Countdown -> count-up turns the remaining time into the accumulator.
    """
    if count_down == state.count_down:
        return state

    elapsed = elapsed_ms(state, now)
    if count_down:
        return TimerState(
            running_since_utc=None,
            accumulated_elapsed_ms=0,
            duration=elapsed,
            count_down=True,
        )
    return TimerState(
        running_since_utc=None,
        accumulated_elapsed_ms=max(state.duration - elapsed, 0),
        duration=0,
        count_down=False,
    )


def add_time(state: TimerState, delta_ms: int) -> TimerState:
    """Add (or remove, for a negative delta) time, never going below zero."""
    if state.count_down:
        return replace(state, duration=max(state.duration + delta_ms, 0))
    return replace(state, accumulated_elapsed_ms=max(state.accumulated_elapsed_ms + delta_ms, 0))
