import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from soulgotchi.engine import SoulGotchiEngine
from soulgotchi.scheduler import TimerHandle

START = 1_700_000_000.0


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now


class ManualTimers:
    """Timer backend that only moves when the test calls advance()."""

    def __init__(self, clock):
        self.clock = clock
        self.handles = []

    def every(self, seconds, callback):
        handle = TimerHandle(len(self.handles), seconds, callback)
        handle.next_due = self.clock.now + seconds
        self.handles.append(handle)
        return handle

    def cancel(self, handle):
        handle.active = False
        handle.callback = None

    @property
    def active(self):
        return [h for h in self.handles if h.active]

    def advance(self, seconds):
        end = self.clock.now + seconds
        while True:
            due = [h for h in self.handles if h.active and h.next_due <= end]
            if not due:
                break
            handle = min(due, key=lambda h: h.next_due)
            self.clock.now = handle.next_due
            handle.next_due += handle.period
            handle.callback()
        self.clock.now = end


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers(clock):
    return ManualTimers(clock)


@pytest.fixture
def engine(clock, timers):
    eng = SoulGotchiEngine(timers, clock=clock, name="Nur")
    eng.start()
    return eng
