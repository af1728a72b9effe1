"""Stacked multi-tree menu navigation for text telemetry displays."""

from telemetry_nav.controls import DirectionalBinding, Toggle
from telemetry_nav.engine import NavigationEngine, RenderScheduler, should_render
from telemetry_nav.errors import ConfigurationError, InvariantViolation, NavigationError
from telemetry_nav.menu import ListMenu, Menu, MenuItem, Payload
from telemetry_nav.session import Session, SessionRegistry

__all__ = [
    "ConfigurationError",
    "DirectionalBinding",
    "InvariantViolation",
    "ListMenu",
    "Menu",
    "MenuItem",
    "NavigationEngine",
    "NavigationError",
    "Payload",
    "RenderScheduler",
    "Session",
    "SessionRegistry",
    "Toggle",
    "should_render",
]
