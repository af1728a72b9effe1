#!/usr/bin/env python3
"""
Telemetry Nav TUI - terminal host for the menu navigation engine.

Uses curses (standard library) as the telemetry display and the keyboard as
the robot's gamepad. Falls back to a simple line mode when no TTY is
available: each line read from stdin names one input for one tick.

Two demo menu trees are registered ("Robot" and "Diagnostics"); the cycle key
switches between them, arrow keys move the cursor, right opens a submenu,
left or 'b' goes back and 'f' goes forward again.
"""

import argparse
import curses
import logging
import os
import signal
import sys
import time
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from telemetry_nav.config import discover_profiles, load_config
from telemetry_nav.engine import NavigationEngine
from telemetry_nav.errors import ConfigurationError
from telemetry_nav.menu import ListMenu, Menu, MenuItem, Payload

# Named keys accepted in the ``keys`` config section
KEY_NAMES: Dict[str, int] = {
    "TAB": 9,
    "ENTER": 10,
    "ESC": 27,
    "SPACE": 32,
}


def resolve_key(name: str) -> int:
    """Translate a config key name into a curses key code."""
    if name in KEY_NAMES:
        return KEY_NAMES[name]
    if name.startswith("KEY_") and hasattr(curses, name):
        return getattr(curses, name)
    if len(name) == 1:
        return ord(name)
    raise ConfigurationError(f"Unknown key name in config: {name!r}")


# =============================================================================
# Input Source
# =============================================================================


class KeyboardInput:
    """Input source holding the inputs pressed since the previous tick."""

    def __init__(self, key_map: Dict[str, str]):
        self.key_map = dict(key_map)
        self._codes: Dict[int, str] = {
            resolve_key(key): input_id for input_id, key in key_map.items()
        }
        self._pressed: Set[str] = set()

    def feed_codes(self, codes: Iterable[int]):
        """Replace the pressed set with the inputs mapped to ``codes``."""
        self._pressed = {self._codes[c] for c in codes if c in self._codes}

    def feed_ids(self, input_ids: Iterable[str]):
        self._pressed = {i for i in input_ids if i in self.key_map}

    def release_all(self):
        self._pressed = set()

    def is_actuated(self, input_id: str) -> bool:
        return input_id in self._pressed

    def lookup(self, token: str) -> Optional[str]:
        """Map a typed token (input id or key character) to an input id."""
        if token in self.key_map:
            return token
        if len(token) == 1:
            return self._codes.get(ord(token))
        code = KEY_NAMES.get(token.upper())
        return self._codes.get(code) if code is not None else None


def drain_keys(stdscr) -> List[int]:
    """Read every key waiting in the curses input buffer."""
    keys = []
    key = stdscr.getch()
    while key != -1:
        keys.append(key)
        key = stdscr.getch()
    return keys


# =============================================================================
# Display Channels
# =============================================================================


class CursesDisplay:
    """Telemetry-style display drawn into a curses window."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        self.lines: List[Tuple[str, str]] = []
        self.title = ""
        self.status = ""
        self.transmission_interval_ms = 0
        self.closed = False

    def set_transmission_interval(self, interval_ms: int):
        self.transmission_interval_ms = interval_ms

    def clear(self):
        self.lines = []

    def write_line(self, key: str, value: Any):
        self.lines.append((str(key), "" if value is None else str(value)))

    def safe_addstr(self, y: int, x: int, text: str, attr=0):
        """Safely add string, handling screen boundaries."""
        max_y, max_x = self.stdscr.getmaxyx()
        if y < 0 or y >= max_y or x < 0:
            return
        available = max_x - x - 1
        if available <= 0:
            return
        try:
            self.stdscr.addstr(y, x, text[:available], attr)
        except curses.error:
            pass

    def close(self):
        """Stop drawing; the window is about to be torn down by endwin()."""
        self.closed = True

    def flush(self):
        if self.closed:
            return
        # erase() instead of clear() to avoid flicker
        self.stdscr.erase()
        max_y, max_x = self.stdscr.getmaxyx()
        if self.title:
            self.safe_addstr(
                0, 0, f" {self.title} ".center(max_x), curses.A_REVERSE | curses.A_BOLD
            )
        for row, (key, value) in enumerate(self.lines, start=2):
            if row >= max_y - 1:
                break
            if value:
                self.safe_addstr(row, 1, f"{key}: {value}")
            else:
                self.safe_addstr(row, 1, key)
        if self.status:
            self.safe_addstr(max_y - 1, 0, self.status.ljust(max_x), curses.A_REVERSE)
        self.stdscr.refresh()


class PrintDisplay:
    """Display channel printing each flushed frame to stdout."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.lines: List[Tuple[str, str]] = []
        self.title = ""

    def clear(self):
        self.lines = []

    def write_line(self, key: str, value: Any):
        self.lines.append((str(key), "" if value is None else str(value)))

    def flush(self):
        out = self.stream
        out.write("=" * 50 + "\n")
        if self.title:
            out.write(f" {self.title}\n")
            out.write("-" * 50 + "\n")
        for key, value in self.lines:
            out.write(f"{key}: {value}\n" if value else f"{key}\n")
        out.flush()


# =============================================================================
# Demo Menu Trees
# =============================================================================


def _uptime_value(start: float):
    return lambda: f"{time.monotonic() - start:.0f} s"


def build_demo_trees(engine: NavigationEngine, refresh_ms: float) -> List[Tuple[str, Menu]]:
    """Build the demo trees; returns (name, root menu) pairs."""
    start = time.monotonic()

    drive = ListMenu(
        "Drive",
        [
            MenuItem("Mode", value=lambda: "field-centric"),
            MenuItem("Speed limit", value=lambda: "80 %"),
        ],
        navigator=engine,
        refresh_interval_ms=refresh_ms,
    )
    arm_presets = ListMenu(
        "Arm presets",
        [MenuItem("Stow"), MenuItem("Intake"), MenuItem("Score high")],
        navigator=engine,
        refresh_interval_ms=refresh_ms,
    )

    def pick_preset(menu: ListMenu):
        label = menu.items[menu.selected_index].label
        engine.navigate_back(Payload(status=f"Arm set to {label}"))

    for item in arm_presets.items:
        item.action = pick_preset
    arm = ListMenu(
        "Arm",
        [MenuItem("Presets", submenu=arm_presets), MenuItem("Position", value=lambda: "0 ticks")],
        navigator=engine,
        refresh_interval_ms=refresh_ms,
    )
    robot_root = ListMenu(
        "Robot",
        [MenuItem("Drive", submenu=drive), MenuItem("Arm", submenu=arm)],
        navigator=engine,
        refresh_interval_ms=refresh_ms,
    )

    events = ListMenu(
        "Events",
        [MenuItem("Engine started", value=_uptime_value(start))],
        navigator=engine,
        refresh_interval_ms=refresh_ms,
    )
    diag_root = ListMenu(
        "Diagnostics",
        [
            MenuItem("Uptime", value=_uptime_value(start)),
            MenuItem("Loop time", value=lambda: "20 ms"),
            MenuItem("Events", submenu=events),
        ],
        navigator=engine,
        refresh_interval_ms=refresh_ms,
    )

    for menu in (drive, arm_presets, arm, robot_root, events, diag_root):
        menu.add_listener("back", engine.navigate_back)
        menu.add_listener("forward", engine.navigate_forward)

    return [("Robot", robot_root), ("Diagnostics", diag_root)]


# =============================================================================
# Host
# =============================================================================


class TelemetryNavApp:
    """Drives the navigation engine from a terminal."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        settings = config["settings"]
        self.tick_ms = settings["tick_ms"]
        self.refresh_ms = settings["default_refresh_ms"]
        self.settle_window_ms = settings["settle_window_ms"]
        self.inputs = KeyboardInput(config["keys"])
        self.engine: Optional[NavigationEngine] = None
        self.running = True

    def build_engine(self, display) -> NavigationEngine:
        engine = NavigationEngine(
            display,
            self.inputs,
            cycle_input=self.config.get("cycle_input"),
            settle_window_ms=self.settle_window_ms,
            default_controls=self.config["directional_controls"],
        )
        for name, root in build_demo_trees(engine, self.refresh_ms):
            engine.register_new_tree(root, name=name)
        self.engine = engine
        return engine

    def status_text(self) -> str:
        engine = self.engine
        if engine is None or engine.registry.is_empty():
            return ""
        if engine.halted:
            return " HALTED | q:quit "
        session = engine.active_session()
        return (
            f" {time.strftime('%H:%M:%S')} | tree {engine.registry.active_index + 1}/"
            f"{len(engine.registry)} '{session.name}' | depth {session.depth}"
            f" | redo {len(session.redo)} | {self.config['keys'].get('cycle', '')}:cycle "
        )

    def run_curses(self, stdscr):
        """Main curses loop."""
        try:
            curses.curs_set(0)  # Hide cursor
        except curses.error:
            pass
        stdscr.nodelay(True)  # Non-blocking input, the loop sleeps between ticks

        display = CursesDisplay(stdscr)
        engine = self.build_engine(display)

        try:
            self._curses_loop(stdscr, display, engine)
        finally:
            # Release the engine while the window still exists
            engine.shutdown()
            display.close()

    def _curses_loop(self, stdscr, display: CursesDisplay, engine: NavigationEngine):
        while self.running:
            try:
                keys = drain_keys(stdscr)
                self.inputs.feed_codes(keys)
                if self.inputs.is_actuated("quit"):
                    self.running = False
                    break
                if engine.current_menu is not None:
                    display.title = f"{engine.active_session().name} > {engine.current_menu.title}"
                display.status = self.status_text()
                engine.advance()
                time.sleep(self.tick_ms / 1000.0)
            except curses.error:
                pass
            except KeyboardInterrupt:
                self.running = False

    def run_simple(self):
        """Line mode for non-TTY environments: one input per stdin line."""
        print("TELEMETRY NAV - Simple Mode (no TTY detected)")
        print("Inputs: " + ", ".join(sorted(self.inputs.key_map)))
        display = PrintDisplay()
        engine = self.build_engine(display)
        display.title = engine.active_session().name
        engine.advance()

        for line in sys.stdin:
            if not self.running:
                break
            token = line.strip()
            if not token:
                continue
            input_id = self.inputs.lookup(token)
            if input_id is None:
                print(f"Unknown input: {token}")
                continue
            if input_id == "quit":
                break
            display.title = engine.active_session().name

            # Press for one tick, then release so the cycle toggle re-arms
            self.inputs.feed_ids([input_id])
            engine.advance()
            self.inputs.release_all()
            if engine.halted:
                break
            # Show the tree the press left us on, even if it did not force a redraw
            display.title = engine.active_session().name
            engine.scheduler.reset()
            engine.advance()

    def run(self):
        """Run the TUI - uses curses if TTY available, otherwise simple text."""
        if os.isatty(sys.stdout.fileno()) and os.isatty(sys.stdin.fileno()):
            try:
                curses.wrapper(self.run_curses)
            except curses.error as e:
                print(f"Curses error: {e}, falling back to simple mode")
                self.run_simple()
        else:
            self.run_simple()

    def stop(self):
        """Stop the host loop and release the engine."""
        self.running = False
        if self.engine is not None:
            self.engine.shutdown()


# =============================================================================
# Main
# =============================================================================


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Telemetry menu navigation TUI")
    parser.add_argument(
        "-p",
        "--profile",
        type=str,
        default="default",
        metavar="NAME",
        help="Configuration profile to load (profiles/<NAME>.yaml). "
        f"Available: {', '.join(discover_profiles()) or 'none'}.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Explicit YAML config file. Overrides --profile.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING).",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Write logs to this file. Without it, logs go to stderr in simple mode only.",
    )
    return parser.parse_args(argv)


def setup_logging(level: str, log_file: Optional[str]):
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    elif not os.isatty(sys.stdout.fileno()):
        logging.basicConfig(stream=sys.stderr, level=level)
    else:
        # Anything written to the terminal would corrupt the curses screen
        logging.getLogger().addHandler(logging.NullHandler())


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    config = load_config(args.profile, path=args.config)
    try:
        app = TelemetryNavApp(config)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Handle SIGINT and SIGTERM for clean shutdown
    def signal_handler(sig, frame):
        app.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.run()
    finally:
        app.stop()


if __name__ == "__main__":
    main()
