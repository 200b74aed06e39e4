import pytest

from modal_engine.keymaps import (
    ActionRef,
    Binding,
    KeySequence,
    KeymapConflictError,
    KeymapRegistry,
    WhenClause,
    load_default_keymaps,
)
from modal_engine.modes import MappingScope


def make_action(action_id: str = "core.test") -> ActionRef:
    return ActionRef(id=action_id, handler=lambda *args, **kwargs: None)


def make_sequence(notation: str) -> KeySequence:
    return KeySequence.parse(notation)


def make_binding(
    *,
    binding_id: str,
    scope: MappingScope = MappingScope.NORMAL,
    sequence: KeySequence | None = None,
    action_id: str = "core.test",
    when: tuple[WhenClause, ...] = (),
) -> Binding:
    return Binding(
        id=binding_id,
        scope=scope,
        sequence=sequence or make_sequence("gg"),
        action_id=action_id,
        when=when,
    )


def test_register_binding_success() -> None:
    registry = KeymapRegistry()
    action = make_action()
    registry.register_action(action)
    binding = make_binding(binding_id="normal.gg")

    registry.register_binding(binding)

    assert registry.stats().binding_count == 1
    assert list(registry.iter_bindings(MappingScope.NORMAL)) == [binding]


def test_register_binding_conflict_detection() -> None:
    registry = KeymapRegistry()
    registry.register_action(make_action())

    binding = make_binding(binding_id="normal.gg")
    registry.register_binding(binding)

    with pytest.raises(KeymapConflictError):
        registry.register_binding(make_binding(binding_id="normal.gg.duplicate"))


def test_same_keys_in_other_scope_do_not_conflict() -> None:
    registry = KeymapRegistry()
    registry.register_action(make_action())

    registry.register_binding(make_binding(binding_id="normal.gg"))
    registry.register_binding(
        make_binding(binding_id="visual.gg", scope=MappingScope.VISUAL)
    )

    assert registry.stats().scopes == ("normal", "visual")


def test_register_binding_non_overlapping_when() -> None:
    registry = KeymapRegistry()
    registry.register_action(make_action())

    binding_default = make_binding(binding_id="default")
    binding_panel = make_binding(
        binding_id="panel",
        when=(WhenClause("lookup_active"),),
    )
    binding_no_panel = make_binding(
        binding_id="no_panel",
        when=(WhenClause.parse("!lookup_active"),),
    )

    registry.register_binding(binding_default)
    registry.register_binding(binding_panel)
    registry.register_binding(binding_no_panel)

    assert registry.stats().binding_count == 3


def test_register_binding_with_replace() -> None:
    registry = KeymapRegistry()
    registry.register_action(make_action())

    first = make_binding(binding_id="binding")
    second = make_binding(binding_id="binding")

    registry.register_binding(first)
    registry.register_binding(second, replace=True)

    assert list(registry.iter_bindings()) == [second]


def test_register_binding_requires_known_action() -> None:
    registry = KeymapRegistry()

    with pytest.raises(KeyError):
        registry.register_binding(make_binding(binding_id="orphan"))


def test_unregister_binding() -> None:
    registry = KeymapRegistry()
    registry.register_action(make_action())
    binding = make_binding(binding_id="binding")
    registry.register_binding(binding)
    before = registry.revision()

    removed = registry.unregister_binding("binding")

    assert removed == binding
    assert registry.stats().binding_count == 0
    assert registry.revision() == before + 1
    assert registry.unregister_binding("binding") is None


def test_load_default_keymaps_timeout_override() -> None:
    registry = KeymapRegistry()

    load_default_keymaps(registry, default_sequence_timeout_ms=1500)

    binding = registry.get_binding("normal.i")
    assert binding.sequence.timeout_ms == 1500
    assert registry.get_binding("normal.gv").sequence.timeout_ms == 1500


def test_load_default_keymaps_include_filters() -> None:
    registry = KeymapRegistry()

    load_default_keymaps(
        registry,
        include_actions=("core.enter_insert",),
        include_bindings=("normal.i",),
    )

    assert registry.stats().binding_count == 1
    assert registry.get_binding("normal.i").action_id == "core.enter_insert"


def test_load_default_keymaps_excluded_action_drops_its_bindings() -> None:
    registry = KeymapRegistry()

    load_default_keymaps(registry, exclude_actions=("visual.exit",))

    with pytest.raises(KeyError):
        registry.get_binding("visual.<Esc>")
    assert registry.get_binding("select.<Esc>").action_id == "select.exit"


def test_load_default_keymaps_extra_bindings_replace_defaults() -> None:
    registry = KeymapRegistry()
    custom_binding = Binding(
        id="normal.i",
        scope=MappingScope.NORMAL,
        sequence=KeySequence.parse("a"),
        action_id="core.enter_insert",
    )

    load_default_keymaps(registry, extra_bindings=(custom_binding,), replace=True)

    binding = registry.get_binding("normal.i")
    assert binding.sequence.tokens == ("a",)


def test_default_bindings_cover_every_scope_used_by_the_engine() -> None:
    registry = KeymapRegistry()

    load_default_keymaps(registry)

    assert registry.stats().scopes == ("insert", "normal", "select", "visual")
    assert registry.get_binding("normal.<C-V>").sequence.tokens == ("ctrl+v",)
    assert registry.get_binding("normal.g<C-H>").sequence.tokens == ("g", "ctrl+h")
