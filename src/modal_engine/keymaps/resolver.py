"""Per-scope trie lookup of key sequences."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Mapping, Optional, Sequence

from modal_engine.modes.base_mode import MappingScope
from modal_engine.runtime.telemetry import span

from .models import ActionRef, Binding
from .registry import KeymapRegistry


@dataclass(slots=True)
class TrieNode:
    bindings: list[str] = field(default_factory=list)
    children: Dict[str, "TrieNode"] = field(default_factory=dict)

    def next_tokens(self) -> tuple[str, ...]:
        return tuple(sorted(self.children))


@dataclass(frozen=True, slots=True)
class ResolutionMatch:
    binding: Binding
    action: ActionRef


@dataclass(frozen=True, slots=True)
class ResolutionResult:
    status: Literal["match", "pending", "miss"]
    match: Optional[ResolutionMatch] = None
    consumed: int = 0
    next_expected: tuple[str, ...] = ()
    timeout_ms: Optional[int] = None


class KeymapResolver:
    """Resolves token sequences against the bindings of one scope.

    Tries are rebuilt lazily whenever the registry revision moves, so
    bindings registered at runtime are picked up on the next lookup.
    """

    def __init__(
        self, registry: KeymapRegistry, *, logger_name: str | None = None
    ) -> None:
        self._registry = registry
        self._logger_name = logger_name
        self._tries: Dict[MappingScope, tuple[int, TrieNode]] = {}

    @property
    def registry(self) -> KeymapRegistry:
        return self._registry

    def resolve(
        self,
        scope: MappingScope,
        tokens: Sequence[str],
        *,
        flags: Optional[Mapping[str, bool]] = None,
    ) -> ResolutionResult:
        scope = MappingScope(scope)
        with span(
            "keymaps::resolve",
            logger_name=self._logger_name,
            component="keymaps",
            metadata={"scope": scope.value, "length": len(tokens)},
        ) as handle:
            node = self._trie(scope)
            for consumed, token in enumerate(tokens):
                child = node.children.get(token)
                if child is None:
                    handle.add_metadata("status", "miss")
                    return ResolutionResult(status="miss", consumed=consumed)
                node = child

            match = self._select(node, flags or {})
            if match is not None:
                handle.add_metadata("status", "match")
                handle.add_metadata("binding_id", match.binding.id)
                return ResolutionResult(
                    status="match", match=match, consumed=len(tokens)
                )

            if node.children:
                handle.add_metadata("status", "pending")
                return ResolutionResult(
                    status="pending",
                    consumed=len(tokens),
                    next_expected=node.next_tokens(),
                    timeout_ms=self._shortest_timeout(node),
                )

            handle.add_metadata("status", "miss")
            return ResolutionResult(status="miss", consumed=len(tokens))

    def reset(self, scope: Optional[MappingScope] = None) -> None:
        if scope is None:
            self._tries.clear()
        else:
            self._tries.pop(MappingScope(scope), None)

    def _trie(self, scope: MappingScope) -> TrieNode:
        revision = self._registry.revision()
        cached = self._tries.get(scope)
        if cached is not None and cached[0] == revision:
            return cached[1]

        root = TrieNode()
        for binding in self._registry.iter_bindings(scope):
            node = root
            for token in binding.sequence.tokens:
                node = node.children.setdefault(token, TrieNode())
            node.bindings.append(binding.id)
        self._tries[scope] = (revision, root)
        return root

    def _select(
        self, node: TrieNode, flags: Mapping[str, bool]
    ) -> Optional[ResolutionMatch]:
        candidates = [
            self._registry.get_binding(binding_id) for binding_id in node.bindings
        ]
        allowed = [binding for binding in candidates if binding.allows(flags)]
        if not allowed:
            return None
        # Gated bindings outrank ungated ones at equal priority.
        allowed.sort(key=lambda b: (-b.priority, -len(b.when), b.id))
        best = allowed[0]
        return ResolutionMatch(
            binding=best, action=self._registry.get_action(best.action_id)
        )

    def _shortest_timeout(self, node: TrieNode) -> Optional[int]:
        timeouts: list[int] = []
        stack = list(node.children.values())
        while stack:
            current = stack.pop()
            timeouts.extend(
                self._registry.get_binding(binding_id).sequence.timeout_ms
                for binding_id in current.bindings
            )
            stack.extend(current.children.values())
        return min(timeouts) if timeouts else None


__all__ = ["KeymapResolver", "ResolutionMatch", "ResolutionResult", "TrieNode"]
