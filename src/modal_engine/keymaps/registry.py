"""Registry of actions and the bindings that reach them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Sequence

from modal_engine.modes.base_mode import MappingScope
from modal_engine.runtime.telemetry import span

from .models import ActionRef, Binding


@dataclass(slots=True)
class RegistryStats:
    action_count: int
    binding_count: int
    scopes: tuple[str, ...]


class KeymapConflictError(RuntimeError):
    """Raised when a binding collides with one already registered."""

    def __init__(self, binding: Binding, conflicts: Iterable[Binding]):
        self.binding = binding
        self.conflicts = tuple(conflicts)
        super().__init__(
            f"Binding '{binding.id}' conflicts with {[b.id for b in self.conflicts]}"
        )


class KeymapRegistry:
    """Owns action references and bindings, indexed by scope and key signature."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._actions: Dict[str, ActionRef] = {}
        self._bindings: Dict[str, Binding] = {}
        self._index: Dict[MappingScope, Dict[str, set[str]]] = {}
        self._logger_name = logger_name
        self._revision = 0

    def revision(self) -> int:
        return self._revision

    def get_action(self, action_id: str) -> ActionRef:
        try:
            return self._actions[action_id]
        except KeyError as exc:
            raise KeyError(f"Action '{action_id}' is not registered") from exc

    def get_binding(self, binding_id: str) -> Binding:
        try:
            return self._bindings[binding_id]
        except KeyError as exc:
            raise KeyError(f"Binding '{binding_id}' is not registered") from exc

    def register_action(self, action: ActionRef, *, replace: bool = False) -> ActionRef:
        if not replace and action.id in self._actions:
            raise ValueError(f"Action '{action.id}' already registered")
        self._actions[action.id] = action
        return action

    def register_binding(self, binding: Binding, *, replace: bool = False) -> Binding:
        with span(
            "keymaps::register_binding",
            logger_name=self._logger_name,
            component="keymaps",
            metadata={"binding_id": binding.id, "scope": binding.scope.value},
        ) as handle:
            if binding.action_id not in self._actions:
                handle.add_metadata("missing_action", binding.action_id)
                raise KeyError(
                    f"Binding '{binding.id}' references unknown action '{binding.action_id}'"
                )

            conflicts = self.detect_conflicts(binding, ignore=(binding.id,))
            if conflicts and not replace:
                handle.add_metadata("conflicts", ",".join(c.id for c in conflicts))
                raise KeymapConflictError(binding, conflicts)
            if binding.id in self._bindings and not replace:
                raise ValueError(f"Binding id '{binding.id}' already registered")

            for stale in conflicts:
                self._drop(stale)
            existing = self._bindings.get(binding.id)
            if existing is not None:
                self._drop(existing)

            self._bindings[binding.id] = binding
            self._index.setdefault(binding.scope, {}).setdefault(
                binding.key_signature, set()
            ).add(binding.id)
            self._revision += 1
            return binding

    def unregister_binding(self, binding_id: str) -> Optional[Binding]:
        binding = self._bindings.get(binding_id)
        if binding is None:
            return None
        self._drop(binding)
        self._revision += 1
        return binding

    def iter_bindings(self, scope: Optional[MappingScope] = None) -> Iterator[Binding]:
        if scope is None:
            yield from tuple(self._bindings.values())
            return
        for bucket in tuple(self._index.get(MappingScope(scope), {}).values()):
            for binding_id in sorted(bucket):
                yield self._bindings[binding_id]

    def stats(self) -> RegistryStats:
        return RegistryStats(
            action_count=len(self._actions),
            binding_count=len(self._bindings),
            scopes=tuple(sorted(scope.value for scope in self._index)),
        )

    def detect_conflicts(
        self, binding: Binding, *, ignore: Sequence[str] | None = None
    ) -> list[Binding]:
        ignored = set(ignore or ())
        bucket = self._index.get(binding.scope, {}).get(binding.key_signature, set())
        return [
            self._bindings[other_id]
            for other_id in sorted(bucket)
            if other_id not in ignored
            and _when_overlaps(binding, self._bindings[other_id])
        ]

    def _drop(self, binding: Binding) -> None:
        self._bindings.pop(binding.id, None)
        by_signature = self._index.get(binding.scope)
        if not by_signature:
            return
        bucket = by_signature.get(binding.key_signature)
        if bucket is None:
            return
        bucket.discard(binding.id)
        if not bucket:
            del by_signature[binding.key_signature]
        if not by_signature:
            del self._index[binding.scope]


def _when_overlaps(left: Binding, right: Binding) -> bool:
    """Whether some flag assignment enables both bindings at once."""

    if not left.when and not right.when:
        return True
    left_map, right_map = left.when_map, right.when_map
    for flag, expected in left_map.items():
        if flag in right_map and right_map[flag] != expected:
            return False
    # A gated binding shadows an ungated one instead of conflicting with it.
    if not left.when or not right.when:
        return False
    return dict(left_map) == dict(right_map)


__all__ = ["KeymapConflictError", "KeymapRegistry", "RegistryStats"]
