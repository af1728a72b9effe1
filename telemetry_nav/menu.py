"""
Menu abstraction driven by the navigation engine.

The engine never looks inside a menu. It only calls the hooks defined on
Menu: init, render, update_listeners, the four cursor handlers,
refresh_interval_ms, set_bound_controls and notify_force_cursor_update.
ListMenu is a small concrete menu (a selectable list of items) used by the
terminal host.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

# =============================================================================
# Constants
# =============================================================================

# Cursor blink interval for menus that do not set their own (milliseconds)
DEFAULT_REFRESH_MS = 500

CURSOR_MARKER = "> "
BLANK_MARKER = "  "


# =============================================================================
# Payload
# =============================================================================


class Payload:
    """Key/value data handed to a menu's ``init`` on a transition."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, **kwargs):
        self._data: Dict[str, Any] = dict(data or {})
        self._data.update(kwargs)

    def add(self, key: str, value: Any) -> "Payload":
        self._data[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def copy(self) -> "Payload":
        """Shallow copy; the receiver gets its own mapping, values are shared."""
        return Payload(self._data)

    def items(self):
        return self._data.items()

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self._data == other._data

    def __repr__(self):
        return f"Payload({self._data!r})"


# =============================================================================
# Menu
# =============================================================================


class Menu:
    """Base class for everything the engine can show.

    Subclasses override ``render`` and whichever cursor handlers they need.
    ``payload`` is the menu's own default payload, used when the menu is
    inflated.
    """

    def __init__(
        self,
        title: str = "",
        payload: Optional[Payload] = None,
        refresh_interval_ms: float = DEFAULT_REFRESH_MS,
    ):
        self.title = title
        self.payload = payload if payload is not None else Payload()
        self.received: Payload = Payload()
        self.controls = None  # DirectionalBinding, set by the engine
        self.listeners: Dict[str, Callable[[], Any]] = {}
        self.force_cursor_update = False
        self._refresh_interval_ms = refresh_interval_ms
        self._listeners_disabled_until = 0.0

    # -- lifecycle hooks ------------------------------------------------------

    def init(self, payload: Payload):
        """Called on every transition into this menu."""
        self.received = payload

    def render(self, display):
        raise NotImplementedError

    def refresh_interval_ms(self) -> float:
        return self._refresh_interval_ms

    def notify_force_cursor_update(self, forced: bool):
        self.force_cursor_update = forced

    # -- cursor handlers --------------------------------------------------------

    def cursor_up(self):
        pass

    def cursor_down(self):
        pass

    def cursor_left(self):
        pass

    def cursor_right(self):
        pass

    # -- listeners --------------------------------------------------------------

    def set_bound_controls(self, binding):
        self.controls = binding

    def add_listener(self, input_id: str, callback: Callable[[], Any]) -> "Menu":
        """Poll ``input_id`` every tick and call ``callback`` when actuated."""
        self.listeners[input_id] = callback
        return self

    def disable_listeners(self, duration_ms: float, now_ms: float):
        """Ignore all input until ``now_ms + duration_ms``."""
        self._listeners_disabled_until = now_ms + duration_ms

    def listeners_enabled(self, now_ms: float) -> bool:
        return now_ms >= self._listeners_disabled_until

    def update_listeners(self, inputs, now_ms: float) -> bool:
        """Dispatch bound controls and extra listeners.

        Returns True when input was consumed and the screen should be redrawn
        immediately.
        """
        if not self.listeners_enabled(now_ms):
            return False

        def navigated_away():
            return self.controls is not None and not self.controls.drives(self)

        # Input left over after a callback navigates is dropped for this tick
        fired = False
        if self.controls is not None:
            fired = self.controls.dispatch(inputs, stop=navigated_away)
        # Copy: a listener may navigate away and rebuild this menu's listeners
        for input_id, callback in list(self.listeners.items()):
            if navigated_away():
                break
            if inputs.is_actuated(input_id):
                callback()
                fired = True
        return fired

    def __repr__(self):
        return f"{type(self).__name__}({self.title!r})"


# =============================================================================
# List Menu
# =============================================================================


@dataclass
class MenuItem:
    """One selectable row of a ListMenu."""

    label: str
    action: Optional[Callable[["ListMenu"], Any]] = None
    submenu: Optional[Menu] = None
    value: Optional[Callable[[], str]] = None  # For live values like "12.4 V"

    def get_value(self) -> str:
        if self.value is None:
            return ""
        return str(self.value())


class ListMenu(Menu):
    """Vertical list of items; right selects, left goes back.

    ``navigator`` is the engine the menu navigates through when an item with
    a submenu is selected or when the cursor moves left.
    """

    def __init__(
        self,
        title: str,
        items: Optional[List[MenuItem]] = None,
        navigator=None,
        payload: Optional[Payload] = None,
        refresh_interval_ms: float = DEFAULT_REFRESH_MS,
    ):
        super().__init__(title, payload, refresh_interval_ms)
        self.items: List[MenuItem] = items or []
        self.navigator = navigator
        self.selected_index = 0
        self.status = ""
        self._cursor_visible = True

    def add_item(self, item: MenuItem) -> "ListMenu":
        self.items.append(item)
        return self

    def init(self, payload: Payload):
        super().init(payload)
        self.status = str(payload.get("status", ""))
        if self.selected_index >= len(self.items):
            self.selected_index = 0

    def cursor_up(self):
        if self.items:
            self.selected_index = (self.selected_index - 1) % len(self.items)

    def cursor_down(self):
        if self.items:
            self.selected_index = (self.selected_index + 1) % len(self.items)

    def cursor_left(self):
        if self.navigator is not None:
            self.navigator.navigate_back()

    def cursor_right(self):
        self.select()

    def select(self):
        """Run the selected item's action and/or open its submenu."""
        if not self.items:
            return
        item = self.items[self.selected_index]
        if item.action is not None:
            try:
                result = item.action(self)
            except Exception as e:
                logging.getLogger(__name__).warning(
                    f"Menu action '{item.label}' failed: {e}"
                )
                self.status = f"Error: {e}"
                return
            if isinstance(result, str):
                self.status = result
        if item.submenu is not None and self.navigator is not None:
            self.navigator.navigate_into(item.submenu)

    def render(self, display):
        # Blink the cursor on timed refreshes, hold it solid right after input
        if self.force_cursor_update:
            self._cursor_visible = True
        else:
            self._cursor_visible = not self._cursor_visible

        display.write_line(self.title, "")
        for i, item in enumerate(self.items):
            selected = i == self.selected_index and self._cursor_visible
            marker = CURSOR_MARKER if selected else BLANK_MARKER
            display.write_line(marker + item.label, item.get_value())
        if self.status:
            display.write_line("Status", self.status)
