import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from telemetry_nav.engine import NavigationEngine
from telemetry_nav.menu import Menu

CYCLE = "X"


class RecordingDisplay:
    """Display channel that keeps every flushed frame."""

    def __init__(self):
        self.lines = []
        self.frames = []
        self.transmission_intervals = []

    def set_transmission_interval(self, interval_ms):
        self.transmission_intervals.append(interval_ms)

    def clear(self):
        self.lines = []

    def write_line(self, key, value):
        self.lines.append((key, value))

    def flush(self):
        self.frames.append(list(self.lines))

    @property
    def last_frame(self):
        return self.frames[-1] if self.frames else []


class ScriptedInputs:
    """Input source whose actuated inputs are set by the test."""

    def __init__(self):
        self.pressed = set()
        self.queries = []

    def press(self, *input_ids):
        self.pressed.update(input_ids)

    def release_all(self):
        self.pressed.clear()

    def is_actuated(self, input_id):
        self.queries.append(input_id)
        return input_id in self.pressed


class ManualClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def tick(self, ms):
        self.now += ms


class RecordingMenu(Menu):
    """Menu that records every hook the engine calls."""

    def __init__(self, title, payload=None, refresh_interval_ms=250):
        super().__init__(title, payload, refresh_interval_ms)
        self.inits = []
        self.moves = []
        self.renders = 0
        self.forced = []
        self.on_up = None

    def init(self, payload):
        super().init(payload)
        self.inits.append(payload)

    def render(self, display):
        self.renders += 1
        self.forced.append(self.force_cursor_update)
        display.write_line("menu", self.title)

    def cursor_up(self):
        self.moves.append("up")
        if self.on_up is not None:
            self.on_up()

    def cursor_down(self):
        self.moves.append("down")

    def cursor_left(self):
        self.moves.append("left")

    def cursor_right(self):
        self.moves.append("right")


@pytest.fixture
def make_menu():
    return RecordingMenu


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def inputs():
    return ScriptedInputs()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def engine(display, inputs, clock):
    return NavigationEngine(display, inputs, cycle_input=CYCLE, clock=clock)
