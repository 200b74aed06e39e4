from __future__ import annotations

from modal_engine.keymaps import (
    ActionRef,
    Binding,
    KeySequence,
    KeymapRegistry,
    KeymapResolver,
    WhenClause,
    load_default_keymaps,
)
from modal_engine.modes import MappingScope


def make_action(action_id: str) -> ActionRef:
    return ActionRef(id=action_id, handler=lambda *args, **kwargs: None)


def make_binding(
    binding_id: str,
    *,
    scope: MappingScope = MappingScope.NORMAL,
    keys: str = "gg",
    action_id: str = "core.test",
    when: tuple[WhenClause, ...] = (),
    priority: int = 0,
    timeout_ms: int = 1000,
) -> Binding:
    return Binding(
        id=binding_id,
        scope=scope,
        sequence=KeySequence.parse(keys, timeout_ms=timeout_ms),
        action_id=action_id,
        when=when,
        priority=priority,
    )


def build_registry(bindings: list[Binding]) -> KeymapRegistry:
    registry = KeymapRegistry()
    action_ids = {binding.action_id for binding in bindings}
    for action_id in action_ids:
        registry.register_action(make_action(action_id))
    for binding in bindings:
        registry.register_binding(binding)
    return registry


def test_resolver_matches_exact_sequence() -> None:
    binding = make_binding("normal.gg")
    registry = build_registry([binding])
    resolver = KeymapResolver(registry)

    result = resolver.resolve(MappingScope.NORMAL, ("g", "g"))

    assert result.status == "match"
    assert result.match is not None
    assert result.match.binding.id == binding.id


def test_resolver_reports_pending_for_prefix() -> None:
    binding = make_binding("normal.gg")
    registry = build_registry([binding])
    resolver = KeymapResolver(registry)

    result = resolver.resolve(MappingScope.NORMAL, ("g",))

    assert result.status == "pending"
    assert result.next_expected == ("g",)


def test_resolver_misses_in_other_scope() -> None:
    registry = build_registry([make_binding("normal.gg")])
    resolver = KeymapResolver(registry)

    result = resolver.resolve(MappingScope.VISUAL, ("g", "g"))

    assert result.status == "miss"
    assert result.consumed == 0


def test_resolver_honors_when_clauses() -> None:
    gating = make_binding(
        "lookup.gg",
        when=(WhenClause("lookup_active"),),
        action_id="core.lookup",
    )
    registry = build_registry([gating])
    resolver = KeymapResolver(registry)

    miss = resolver.resolve(MappingScope.NORMAL, ("g", "g"), flags={})
    assert miss.status == "miss"

    hit = resolver.resolve(MappingScope.NORMAL, ("g", "g"), flags={"lookup_active": True})
    assert hit.status == "match"
    assert hit.match is not None
    assert hit.match.binding.id == gating.id


def test_resolver_prefers_gated_binding_when_flag_holds() -> None:
    plain = make_binding("plain", keys="x", action_id="core.plain")
    gated = make_binding(
        "gated", keys="x", action_id="core.gated", when=(WhenClause("one_line"),)
    )
    registry = build_registry([plain, gated])
    resolver = KeymapResolver(registry)

    assert resolver.resolve(MappingScope.NORMAL, ("x",)).match.binding.id == "plain"
    result = resolver.resolve(MappingScope.NORMAL, ("x",), flags={"one_line": True})
    assert result.match is not None
    assert result.match.binding.id == "gated"


def test_resolver_pending_returns_timeout_hint() -> None:
    binding = make_binding("normal.gg", timeout_ms=1500)
    registry = build_registry([binding])
    resolver = KeymapResolver(registry)

    result = resolver.resolve(MappingScope.NORMAL, ("g",))

    assert result.status == "pending"
    assert result.timeout_ms == 1500


def test_resolver_cache_refreshes_on_revision() -> None:
    registry = build_registry([])
    resolver = KeymapResolver(registry)

    miss = resolver.resolve(MappingScope.NORMAL, ("x",))
    assert miss.status == "miss"

    new_binding = make_binding("normal.x", keys="x", action_id="core.x")
    registry.register_action(make_action("core.x"))
    registry.register_binding(new_binding)

    match = resolver.resolve(MappingScope.NORMAL, ("x",))
    assert match.status == "match"
    assert match.match is not None
    assert match.match.binding.id == new_binding.id


def test_default_g_prefix_lists_every_continuation() -> None:
    registry = KeymapRegistry()
    load_default_keymaps(registry)
    resolver = KeymapResolver(registry)

    result = resolver.resolve(MappingScope.NORMAL, ("g",))

    assert result.status == "pending"
    assert result.next_expected == ("H", "ctrl+h", "h", "v")
