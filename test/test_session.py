import pytest

from telemetry_nav.controls import DirectionalBinding
from telemetry_nav.errors import ConfigurationError, InvariantViolation
from telemetry_nav.menu import Payload
from telemetry_nav.session import Session, SessionRegistry


@pytest.fixture
def session(make_menu):
    s = Session("main", settle_window_ms=250)
    s.start_root(make_menu("root"))
    return s


def test_start_root_initializes_with_empty_payload(make_menu):
    root = make_menu("root", payload=Payload(ignored=True))
    s = Session()
    s.start_root(root)

    assert s.current is root
    assert s.history == [] and s.redo == []
    assert root.inits == [Payload()]


def test_start_root_discards_existing_history(session, make_menu):
    session.inflate(make_menu("a"), now_ms=0)
    session.back()

    new_root = make_menu("new")
    session.start_root(new_root)

    assert session.current is new_root
    assert session.history == [] and session.redo == []


def test_inflate_pushes_current_and_uses_menus_own_payload(session, make_menu):
    root = session.current
    child = make_menu("child", payload=Payload(level=2))

    session.inflate(child, now_ms=1000)

    assert session.history == [root]
    assert session.current is child
    assert child.inits == [Payload(level=2)]
    assert child.inits[0] is not child.payload


def test_forward_is_noop_after_inflates(session, make_menu):
    for i in range(4):
        session.inflate(make_menu(f"m{i}"), now_ms=0)
        before = session.current
        assert session.forward() is False
        assert session.current is before
        assert session.redo == []


def test_inflate_clears_redo(session, make_menu):
    session.inflate(make_menu("a"), now_ms=0)
    session.back()
    assert len(session.redo) == 1

    session.inflate(make_menu("b"), now_ms=0)

    assert session.redo == []
    assert session.forward() is False


def test_back_at_root_is_noop(session):
    root = session.current
    assert session.back() is False
    assert session.current is root
    assert session.redo == []


def test_back_moves_current_to_redo(session, make_menu):
    root = session.current
    child = make_menu("child")
    session.inflate(child, now_ms=0)

    assert session.back(Payload(result="ok"), now_ms=0) is True

    assert session.current is root
    assert session.redo == [child]
    assert session.history == []
    assert root.inits[-1] == Payload(result="ok")


def test_back_then_forward_restores_state(session, make_menu):
    a, b = make_menu("a"), make_menu("b")
    session.inflate(a, now_ms=0)
    session.inflate(b, now_ms=0)
    history_before = list(session.history)

    session.back(Payload(x=1))
    session.forward(Payload(x=1))

    assert session.current is b
    assert session.history == history_before
    assert session.redo == []
    assert b.inits[-1] == Payload(x=1)


def test_forward_without_payload_uses_empty_payload(session, make_menu):
    child = make_menu("child", payload=Payload(default=True))
    session.inflate(child, now_ms=0)
    session.back()

    session.forward()

    assert child.inits[-1] == Payload()


def test_payload_is_copied_not_aliased(session, make_menu):
    session.inflate(make_menu("child"), now_ms=0)
    payload = Payload(count=1)

    session.back(payload)
    payload.add("count", 99)

    assert session.current.received["count"] == 1


def test_settle_window_applied_on_inflate_and_back_only(session, make_menu):
    root = session.current
    child = make_menu("child")

    session.inflate(child, now_ms=1000)
    assert not child.listeners_enabled(1100)
    assert child.listeners_enabled(1250)

    session.back(now_ms=2000)
    assert not root.listeners_enabled(2249)
    assert root.listeners_enabled(2250)

    session.forward()
    assert child.listeners_enabled(2001)


def test_inflating_menu_already_in_history_is_invariant_violation(session, make_menu):
    root = session.current
    session.inflate(make_menu("child"), now_ms=0)

    with pytest.raises(InvariantViolation):
        session.inflate(root, now_ms=0)


def test_inflating_menu_from_redo_is_allowed(session, make_menu):
    child = make_menu("child")
    session.inflate(child, now_ms=0)
    session.back()

    session.inflate(child, now_ms=0)

    assert session.current is child
    assert session.redo == []


def test_check_invariants_detects_corrupted_stacks(session):
    session.history.append(session.current)

    with pytest.raises(InvariantViolation):
        session.check_invariants()


def test_operations_without_root_are_invariant_violations(make_menu):
    s = Session()
    with pytest.raises(InvariantViolation):
        s.inflate(make_menu("a"), now_ms=0)
    with pytest.raises(InvariantViolation):
        s.back()


def binding(prefix):
    return DirectionalBinding(
        {"up": f"{prefix}u", "down": f"{prefix}d", "left": f"{prefix}l", "right": f"{prefix}r"}
    )


def build_registry(make_menu, n):
    registry = SessionRegistry()
    pairs = []
    for i in range(n):
        s = Session(f"s{i}")
        s.start_root(make_menu(f"root{i}"))
        b = binding(str(i))
        registry.register_new_tree(s, b)
        pairs.append((s, b))
    return registry, pairs


def test_register_makes_new_tree_active(make_menu):
    registry, pairs = build_registry(make_menu, 3)

    assert registry.active_session() is pairs[2][0]
    assert registry.active_binding() is pairs[2][1]


def test_rotate_round_robin_in_registration_order(make_menu):
    registry, pairs = build_registry(make_menu, 3)

    seen = [registry.rotate() for _ in range(3)]

    assert seen == [pairs[0][0], pairs[1][0], pairs[2][0]]


@pytest.mark.parametrize("n", [1, 2, 5])
def test_rotating_n_times_restores_active_pair(make_menu, n):
    registry, _ = build_registry(make_menu, n)
    session, bound = registry.active_session(), registry.active_binding()

    for _ in range(n):
        registry.rotate()

    assert registry.active_session() is session
    assert registry.active_binding() is bound
    assert len(registry) == n


def test_rotate_keeps_sessions_and_bindings_paired(make_menu):
    registry, pairs = build_registry(make_menu, 4)

    for _ in range(7):
        registry.rotate()
        assert (registry.active_session(), registry.active_binding()) in pairs


def test_rotate_empty_registry_is_invariant_violation():
    with pytest.raises(InvariantViolation):
        SessionRegistry().rotate()


def test_active_session_of_empty_registry_is_configuration_error():
    with pytest.raises(ConfigurationError):
        SessionRegistry().active_session()


def test_replace_active_binding_only_touches_active_pair(make_menu):
    registry, pairs = build_registry(make_menu, 2)
    new_binding = binding("n")

    registry.replace_active_binding(new_binding)

    assert registry.active_binding() is new_binding
    registry.rotate()
    assert registry.active_binding() is pairs[0][1]
