"""
Menu sessions and the registry that multiplexes them.

A Session is one menu tree: the current menu, the back history beneath it and
the forward (redo) stack filled by ``back``. The SessionRegistry holds every
session together with its cursor controls and rotates through them
round-robin.
"""

import logging
from typing import List, Optional, Tuple

from telemetry_nav.controls import DirectionalBinding
from telemetry_nav.errors import ConfigurationError, InvariantViolation
from telemetry_nav.menu import Menu, Payload

# Post-transition input suppression (milliseconds)
POST_INFLATION_WAIT_TIME = 250

logger = logging.getLogger(__name__)


# =============================================================================
# Session
# =============================================================================


class Session:
    """Back/forward history of one menu tree.

    ``history`` never contains ``current``; its last element is the menu
    ``back`` returns to. ``redo`` holds menus left by ``back``, last element
    first to come back on ``forward``.
    """

    def __init__(self, name: str = "", settle_window_ms: float = POST_INFLATION_WAIT_TIME):
        self.name = name
        self.settle_window_ms = settle_window_ms
        self.history: List[Menu] = []
        self.redo: List[Menu] = []
        self.current: Optional[Menu] = None

    def start_root(self, menu: Menu):
        """Make ``menu`` the root of a fresh tree."""
        self.history.clear()
        self.redo.clear()
        self.current = menu
        menu.init(Payload())
        self.check_invariants()

    def inflate(self, menu: Menu, now_ms: float):
        """Push ``menu`` on top of the current one and discard redo history."""
        self._require_current()
        if menu is self.current or any(m is menu for m in self.history):
            raise InvariantViolation(
                f"{menu!r} is already open in session '{self.name}'"
            )
        self.history.append(self.current)
        self.redo.clear()
        self.current = menu
        menu.init(menu.payload.copy())
        menu.disable_listeners(self.settle_window_ms, now_ms)
        self.check_invariants()
        logger.debug(f"[{self.name}] inflate -> {menu!r} (depth {self.depth})")

    def back(self, payload: Optional[Payload] = None, now_ms: float = 0.0) -> bool:
        """Return to the previous menu. No-op (False) at the root."""
        self._require_current()
        if not self.history:
            return False
        self.redo.append(self.current)
        self.current = self.history.pop()
        self.current.init((payload or Payload()).copy())
        self.current.disable_listeners(self.settle_window_ms, now_ms)
        self.check_invariants()
        logger.debug(f"[{self.name}] back -> {self.current!r} (redo {len(self.redo)})")
        return True

    def forward(self, payload: Optional[Payload] = None) -> bool:
        """Redo the last ``back``. No-op (False) when there is nothing to redo.

        Unlike ``back``, forward does not apply the settle window.
        """
        self._require_current()
        if not self.redo:
            return False
        self.history.append(self.current)
        self.current = self.redo.pop()
        self.current.init((payload or Payload()).copy())
        self.check_invariants()
        logger.debug(f"[{self.name}] forward -> {self.current!r} (redo {len(self.redo)})")
        return True

    @property
    def depth(self) -> int:
        """Number of menus on the back path including the current one."""
        return len(self.history) + (1 if self.current is not None else 0)

    def check_invariants(self):
        if self.current is None:
            return
        if any(m is self.current for m in self.history):
            raise InvariantViolation(
                f"Current menu {self.current!r} is also in the history of '{self.name}'"
            )
        if any(m is self.current for m in self.redo):
            raise InvariantViolation(
                f"Current menu {self.current!r} is also in the redo stack of '{self.name}'"
            )
        history_ids = {id(m) for m in self.history}
        if any(id(m) in history_ids for m in self.redo):
            raise InvariantViolation(
                f"A menu of '{self.name}' is in both the history and redo stacks"
            )

    def _require_current(self):
        if self.current is None:
            raise InvariantViolation(f"Session '{self.name}' has no root menu")

    def __repr__(self):
        return (
            f"Session({self.name!r}, current={self.current!r}, "
            f"history={len(self.history)}, redo={len(self.redo)})"
        )


# =============================================================================
# Session Registry
# =============================================================================


class SessionRegistry:
    """Sessions and their cursor controls, rotated in lockstep.

    Stored as a list in registration order plus the index of the active pair;
    rotating advances the index and wraps back to the oldest session.
    """

    def __init__(self):
        self._entries: List[Tuple[Session, DirectionalBinding]] = []
        self._active = -1

    def register_new_tree(self, session: Session, binding: DirectionalBinding):
        """Append a (session, binding) pair and make it active."""
        self._entries.append((session, binding))
        self._active = len(self._entries) - 1

    def rotate(self) -> Session:
        """Activate the next session round-robin and return it."""
        if not self._entries:
            raise InvariantViolation("Cannot rotate an empty session registry")
        self._active = (self._active + 1) % len(self._entries)
        return self._entries[self._active][0]

    def active_session(self) -> Session:
        return self._active_entry()[0]

    def active_binding(self) -> DirectionalBinding:
        return self._active_entry()[1]

    def replace_active_binding(self, binding: DirectionalBinding):
        session, _ = self._active_entry()
        self._entries[self._active] = (session, binding)

    def sessions(self) -> List[Session]:
        return [session for session, _ in self._entries]

    @property
    def active_index(self) -> int:
        return self._active

    def is_empty(self) -> bool:
        return not self._entries

    def clear(self):
        self._entries.clear()
        self._active = -1

    def __len__(self) -> int:
        return len(self._entries)

    def _active_entry(self) -> Tuple[Session, DirectionalBinding]:
        if not self._entries:
            raise ConfigurationError(
                "No menu tree registered; call register_new_tree() first"
            )
        return self._entries[self._active]
