import pytest

from telemetry_nav.controls import DirectionalBinding, Toggle
from telemetry_nav.errors import ConfigurationError


def run_toggle(readings):
    toggle = Toggle()
    fires = 0
    for reading in readings:
        toggle.update(reading)
        if toggle.is_firing():
            fires += 1
    return fires


def test_toggle_fires_on_single_tick_press():
    assert run_toggle([False, True, False]) == 1


def test_toggle_fires_once_for_long_press():
    assert run_toggle([True] * 50) == 1


def test_toggle_fires_for_each_separate_press():
    assert run_toggle([True, False, True]) == 2


def test_toggle_never_fires_while_released():
    assert run_toggle([False] * 20) == 0


def test_toggle_only_fires_on_the_rising_tick():
    toggle = Toggle()
    toggle.update(True)
    assert toggle.is_firing()
    toggle.update(True)
    assert not toggle.is_firing()


def test_toggle_reset_rearms():
    toggle = Toggle()
    toggle.update(True)
    toggle.reset()
    toggle.update(True)
    assert toggle.is_firing()


class Pressed:
    def __init__(self, *ids):
        self.ids = set(ids)

    def is_actuated(self, input_id):
        return input_id in self.ids


def test_duplicate_inputs_rejected():
    with pytest.raises(ConfigurationError):
        DirectionalBinding({"up": "D1", "down": "D1", "left": "D2", "right": "D3"})


def test_missing_direction_rejected():
    with pytest.raises(ConfigurationError):
        DirectionalBinding({"up": "D1", "down": "D2", "left": "D3"})


def test_unknown_direction_rejected():
    with pytest.raises(ConfigurationError):
        DirectionalBinding(
            {"up": "D1", "down": "D2", "left": "D3", "right": "D4", "jump": "D5"}
        )


def test_dispatch_calls_only_actuated_directions():
    calls = []
    binding = DirectionalBinding(
        {"up": "U", "down": "D", "left": "L", "right": "R"},
        {
            "up": lambda: calls.append("up"),
            "down": lambda: calls.append("down"),
            "left": lambda: calls.append("left"),
            "right": lambda: calls.append("right"),
        },
    )

    assert binding.dispatch(Pressed("D", "R")) is True
    assert calls == ["down", "right"]
    assert binding.dispatch(Pressed()) is False
    assert calls == ["down", "right"]


def test_bind_replaces_one_direction():
    calls = []
    binding = DirectionalBinding({"up": "U", "down": "D", "left": "L", "right": "R"})

    binding.bind("up", "W", lambda: calls.append("w"))

    assert binding.input_for("up") == "W"
    binding.dispatch(Pressed("W", "U"))
    assert calls == ["w"]


def test_bind_rejects_duplicate_and_keeps_old_binding():
    binding = DirectionalBinding({"up": "U", "down": "D", "left": "L", "right": "R"})

    with pytest.raises(ConfigurationError):
        binding.bind("up", "D", lambda: None)

    assert binding.input_ids() == ("U", "D", "L", "R")


def test_targeting_follows_target_at_dispatch_time():
    class Cursor:
        def __init__(self):
            self.moves = []

        def cursor_up(self):
            self.moves.append("up")

    first, second = Cursor(), Cursor()
    target = {"menu": first}
    binding = DirectionalBinding.targeting(
        {"up": "U", "down": "D", "left": "L", "right": "R"}, lambda: target["menu"]
    )

    target["menu"] = second
    binding.dispatch(Pressed("U"))

    assert first.moves == []
    assert second.moves == ["up"]
    assert binding.drives(second)
    assert not binding.drives(first)


def test_dispatch_skips_remaining_directions_once_stopped():
    calls = []
    binding = DirectionalBinding(
        {"up": "U", "down": "D", "left": "L", "right": "R"},
        {
            "up": lambda: calls.append("up"),
            "right": lambda: calls.append("right"),
        },
    )

    assert binding.dispatch(Pressed("U", "R"), stop=lambda: bool(calls)) is True
    assert calls == ["up"]
