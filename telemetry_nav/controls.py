"""
Input primitives for the navigation engine.

- Toggle: rising-edge detector used to debounce the cycle button.
- DirectionalBinding: maps the four cursor directions to input ids and
  callbacks, and dispatches them against an input source every tick.
"""

import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

from telemetry_nav.errors import ConfigurationError

# =============================================================================
# Constants
# =============================================================================

UP = "up"
DOWN = "down"
LEFT = "left"
RIGHT = "right"

# Dispatch order is fixed so callbacks fire deterministically within a tick
DIRECTIONS: Tuple[str, ...] = (UP, DOWN, LEFT, RIGHT)

# Default cursor controls bound to every new tree (gamepad dpad)
DEFAULT_CURSOR_CONTROLS: Dict[str, str] = {
    UP: "dpad_up",
    DOWN: "dpad_down",
    LEFT: "dpad_left",
    RIGHT: "dpad_right",
}


# =============================================================================
# Toggle
# =============================================================================


class Toggle:
    """Fires exactly once per false -> true transition of its input."""

    def __init__(self, initial_state: bool = False):
        self._previous = initial_state
        self._firing = False

    def update(self, raw_input: bool):
        raw_input = bool(raw_input)
        self._firing = raw_input and not self._previous
        self._previous = raw_input

    def is_firing(self) -> bool:
        return self._firing

    def reset(self):
        """Forget the input history so the next true reading fires."""
        self._previous = False
        self._firing = False


# =============================================================================
# Directional Binding
# =============================================================================


class DirectionalBinding:
    """Four cursor directions, each bound to an input id and a callback.

    The four input ids must be pairwise distinct. A set of bindings that
    violates this is a configuration error and is rejected before any state
    changes.
    """

    def __init__(
        self,
        inputs: Dict[str, str],
        callbacks: Optional[Dict[str, Callable[[], None]]] = None,
    ):
        missing = [d for d in DIRECTIONS if d not in inputs]
        if missing:
            raise ConfigurationError(
                f"Cursor controls missing direction(s): {', '.join(missing)}"
            )
        unknown = [d for d in inputs if d not in DIRECTIONS]
        if unknown:
            raise ConfigurationError(f"Unknown direction(s): {', '.join(unknown)}")
        check_unique(inputs[d] for d in DIRECTIONS)

        callbacks = callbacks or {}
        self._inputs: Dict[str, str] = {d: inputs[d] for d in DIRECTIONS}
        self._callbacks: Dict[str, Optional[Callable[[], None]]] = {
            d: callbacks.get(d) for d in DIRECTIONS
        }
        # Set by targeting(); returns the menu receiving cursor movement
        self.target: Optional[Callable[[], object]] = None

    @classmethod
    def targeting(cls, inputs: Dict[str, str], target) -> "DirectionalBinding":
        """Build a binding whose callbacks move the cursor of ``target()``.

        ``target`` is a zero-argument callable returning the menu that should
        receive the cursor movement at dispatch time.
        """
        callbacks = {
            UP: lambda: target().cursor_up(),
            DOWN: lambda: target().cursor_down(),
            LEFT: lambda: target().cursor_left(),
            RIGHT: lambda: target().cursor_right(),
        }
        binding = cls(inputs, callbacks)
        binding.target = target
        return binding

    def drives(self, menu) -> bool:
        """True while ``menu`` is the one receiving this binding's movements."""
        return self.target is None or self.target() is menu

    def bind(self, direction: str, input_id: str, callback: Callable[[], None]):
        """Rebind one direction; rejected if it would duplicate another input."""
        if direction not in DIRECTIONS:
            raise ConfigurationError(f"Unknown direction: {direction!r}")
        others = [self._inputs[d] for d in DIRECTIONS if d != direction]
        check_unique(others + [input_id])
        self._inputs[direction] = input_id
        self._callbacks[direction] = callback

    def input_for(self, direction: str) -> str:
        return self._inputs[direction]

    def input_ids(self) -> Tuple[str, ...]:
        return tuple(self._inputs[d] for d in DIRECTIONS)

    def dispatch(self, inputs, stop: Optional[Callable[[], bool]] = None) -> bool:
        """Invoke the callback of every direction whose input is actuated.

        ``inputs`` is anything with ``is_actuated(input_id) -> bool``. When
        ``stop`` returns True before a callback, the remaining directions are
        skipped for this tick. Returns True if at least one callback fired.
        """
        fired = False
        for direction in DIRECTIONS:
            if not inputs.is_actuated(self._inputs[direction]):
                continue
            callback = self._callbacks[direction]
            if callback is not None:
                if stop is not None and stop():
                    break
                callback()
                fired = True
        return fired

    def __repr__(self):
        pairs = ", ".join(f"{d}={self._inputs[d]!r}" for d in DIRECTIONS)
        return f"DirectionalBinding({pairs})"


def check_unique(input_ids: Iterable[str]):
    """Raise ConfigurationError if any input id appears more than once."""
    seen = set()
    for input_id in input_ids:
        if input_id in seen:
            logging.getLogger(__name__).warning(
                f"Rejected cursor controls: input {input_id!r} bound twice"
            )
            raise ConfigurationError("All cursor controls must be unique")
        seen.add(input_id)
