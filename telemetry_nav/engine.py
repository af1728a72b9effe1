"""
Navigation engine: several menu trees on one telemetry display.

The host calls ``advance()`` once per control-loop tick. Each tick runs, in
order:
1. the active menu's listener update (cursor controls, extra listeners),
2. the render decision (blink interval or forced redraw after input),
3. the cycle button toggle, which rotates to the next menu tree.

Nothing here blocks or spawns threads; every state change completes inside
the call that caused it. All calls must come from the thread driving
``advance()``.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional, Protocol

from telemetry_nav.controls import DEFAULT_CURSOR_CONTROLS, DirectionalBinding, Toggle
from telemetry_nav.errors import ConfigurationError, InvariantViolation
from telemetry_nav.menu import Menu, Payload
from telemetry_nav.session import POST_INFLATION_WAIT_TIME, Session, SessionRegistry

# =============================================================================
# Constants
# =============================================================================

# Display transmission intervals (milliseconds)
DEFAULT_TRANSMISSION_INTERVAL_MS = 250
DEFAULT_HAL_TRANSMISSION_INTERVAL_MS = 50

logger = logging.getLogger(__name__)


# =============================================================================
# Collaborator Interfaces
# =============================================================================


class DisplayChannel(Protocol):
    """Line-oriented output the engine renders menus into."""

    def clear(self) -> None: ...

    def write_line(self, key: str, value: Any) -> None: ...

    def flush(self) -> None: ...


class InputSource(Protocol):
    """Host input polled every tick."""

    def is_actuated(self, input_id: str) -> bool: ...


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


# =============================================================================
# Render Scheduler
# =============================================================================


def should_render(
    last_render_ms: float, min_interval_ms: float, force: bool, now_ms: float
) -> bool:
    """Render when forced or when the minimum interval has elapsed."""
    return force or (now_ms - last_render_ms) >= min_interval_ms


class RenderScheduler:
    """Throttles redraws to the active menu's refresh interval."""

    def __init__(self):
        self.last_render_ms = float("-inf")

    def due(self, min_interval_ms: float, force: bool, now_ms: float) -> bool:
        return should_render(self.last_render_ms, min_interval_ms, force, now_ms)

    def mark_rendered(self, now_ms: float):
        self.last_render_ms = now_ms

    def reset(self):
        self.last_render_ms = float("-inf")


# =============================================================================
# Navigation Engine
# =============================================================================


class NavigationEngine:
    """Multiplexes menu trees, their histories and their cursor controls.

    Construct one per program in the host's composition root and pass it to
    whatever needs to navigate.
    """

    def __init__(
        self,
        display: DisplayChannel,
        inputs: InputSource,
        cycle_input: Optional[str] = None,
        settle_window_ms: float = POST_INFLATION_WAIT_TIME,
        default_controls: Optional[Dict[str, str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.display = display
        self.inputs = inputs
        self.cycle_input = cycle_input
        self.settle_window_ms = settle_window_ms
        self.default_controls = dict(default_controls or DEFAULT_CURSOR_CONTROLS)
        self.registry = SessionRegistry()
        self.scheduler = RenderScheduler()
        self.cycle_toggle = Toggle()
        self.halted = False
        self.halt_reason = ""
        self._clock = clock or monotonic_ms
        self._stopped = False

        self._set_transmission_interval(DEFAULT_HAL_TRANSMISSION_INTERVAL_MS)

    # -- setup ------------------------------------------------------------------

    def set_cycle_input(self, input_id: Optional[str]):
        """Set the input that rotates between menu trees."""
        self.cycle_input = input_id
        self.cycle_toggle.reset()

    def register_new_tree(
        self,
        root_menu: Menu,
        directional_inputs: Optional[Dict[str, str]] = None,
        name: Optional[str] = None,
    ) -> Session:
        """Start a new menu tree rooted at ``root_menu`` and make it active.

        ``directional_inputs`` maps up/down/left/right to input ids; missing
        directions use the engine's default controls.
        """
        if self._stopped:
            raise ConfigurationError("Navigation engine has been shut down")

        controls = dict(self.default_controls)
        controls.update(directional_inputs or {})
        session = Session(
            name or f"tree{len(self.registry)}", settle_window_ms=self.settle_window_ms
        )
        # Built before anything is registered so a bad binding leaves no trace
        binding = self._make_binding(controls, session)

        session.start_root(root_menu)
        root_menu.set_bound_controls(binding)
        self.registry.register_new_tree(session, binding)
        logger.info(
            f"Registered menu tree '{session.name}' rooted at {root_menu!r} "
            f"({len(self.registry)} tree(s))"
        )
        return session

    def rebind_directional_controls(self, up: str, down: str, left: str, right: str) -> bool:
        """Replace the active tree's cursor controls. False while halted."""
        session = self.active_session()
        if self._refuse_while_halted("rebind_directional_controls"):
            return False
        binding = self._make_binding(
            {"up": up, "down": down, "left": left, "right": right}, session
        )
        self.registry.replace_active_binding(binding)
        session.current.set_bound_controls(binding)
        logger.info(f"Rebound cursor controls of '{session.name}': {binding!r}")
        return True

    # -- accessors --------------------------------------------------------------

    def active_session(self) -> Session:
        return self.registry.active_session()

    @property
    def current_menu(self) -> Optional[Menu]:
        if self.registry.is_empty():
            return None
        return self.registry.active_session().current

    # -- navigation -------------------------------------------------------------

    def navigate_into(self, menu: Menu) -> bool:
        """Show ``menu`` on top of the active tree."""
        session = self.active_session()
        if self._refuse_while_halted("navigate_into"):
            return False
        with self._halt_on_violation():
            session.inflate(menu, self._clock())
        menu.set_bound_controls(self.registry.active_binding())
        return True

    def navigate_back(self, payload: Optional[Payload] = None) -> bool:
        """Go back within the active tree. False when already at its root."""
        session = self.active_session()
        if self._refuse_while_halted("navigate_back"):
            return False
        with self._halt_on_violation():
            moved = session.back(payload, self._clock())
        if moved:
            session.current.set_bound_controls(self.registry.active_binding())
        return moved

    def navigate_forward(self, payload: Optional[Payload] = None) -> bool:
        """Redo the last back within the active tree. False if nothing to redo."""
        session = self.active_session()
        if self._refuse_while_halted("navigate_forward"):
            return False
        with self._halt_on_violation():
            moved = session.forward(payload)
        if moved:
            session.current.set_bound_controls(self.registry.active_binding())
        return moved

    def cycle(self) -> Optional[Session]:
        """Activate the next menu tree. None while halted."""
        if self._refuse_while_halted("cycle"):
            return None
        with self._halt_on_violation():
            session = self.registry.rotate()
            session.check_invariants()
        session.current.set_bound_controls(self.registry.active_binding())
        logger.info(
            f"Cycled to menu tree '{session.name}' "
            f"({self.registry.active_index + 1}/{len(self.registry)})"
        )
        return session

    # -- tick -------------------------------------------------------------------

    def advance(self):
        """Run one control-loop tick. Call repeatedly from the host."""
        if self.halted or self.registry.is_empty():
            return
        try:
            self._tick()
        except InvariantViolation as e:
            if not self.halted:
                self._halt(e)

    def _tick(self):
        now = self._clock()

        force_redraw = self.active_session().current.update_listeners(
            self.inputs, now
        )

        # A listener may have navigated; render whatever is current now
        menu = self.active_session().current
        if self.scheduler.due(menu.refresh_interval_ms(), force_redraw, now):
            self._render(menu, force_redraw, now)

        cycle_pressed = self.cycle_input is not None and self.inputs.is_actuated(
            self.cycle_input
        )
        self.cycle_toggle.update(cycle_pressed)
        if self.cycle_toggle.is_firing():
            self.cycle()

    def _render(self, menu: Menu, forced: bool, now: float):
        menu.notify_force_cursor_update(forced)
        self.display.clear()
        menu.render(self.display)
        self.display.flush()
        self.scheduler.mark_rendered(now)
        logger.debug(f"Rendered {menu!r} (forced={forced})")

    # -- teardown ---------------------------------------------------------------

    def shutdown(self):
        """Release every tree and detach from the display."""
        if self._stopped:
            return
        self.registry.clear()
        self.scheduler.reset()
        self._set_transmission_interval(DEFAULT_TRANSMISSION_INTERVAL_MS)
        if self.display is not None:
            self.display.clear()
            self.display.flush()
        self.display = None
        self.inputs = None
        self.cycle_input = None
        self._stopped = True
        logger.info("Navigation engine shut down")

    # -- internals --------------------------------------------------------------

    def _make_binding(self, controls: Dict[str, str], session: Session):
        # Cursor callbacks follow the session's current menu, not the root
        return DirectionalBinding.targeting(controls, lambda: session.current)

    def _halt(self, error: InvariantViolation):
        self.halted = True
        self.halt_reason = str(error)
        logger.error(f"Navigation halted: {error}")
        if self.display is not None:
            self.display.clear()
            self.display.write_line("ERROR!!!", self.halt_reason)
            self.display.write_line("Navigation halted", "restart required")
            self.display.flush()

    @contextmanager
    def _halt_on_violation(self):
        """Halt the engine if an invariant violation passes through, then re-raise."""
        try:
            yield
        except InvariantViolation as e:
            if not self.halted:
                self._halt(e)
            raise

    def _refuse_while_halted(self, operation: str) -> bool:
        if self.halted:
            logger.warning(f"Ignored {operation}: navigation is halted")
        return self.halted

    def _set_transmission_interval(self, interval_ms: int):
        setter = getattr(self.display, "set_transmission_interval", None)
        if setter is not None:
            setter(interval_ms)
