"""Key strokes, sequences, actions and bindings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from modal_engine.modes.base_mode import MappingScope

KEY_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "esc": "escape",
        "<esc>": "escape",
        "return": "enter",
        "cr": "enter",
        "bs": "backspace",
        "del": "delete",
        "ins": "insert",
        "pgup": "pageup",
        "page_up": "pageup",
        "pgdn": "pagedown",
        "page_down": "pagedown",
        "space": " ",
        "lt": "<",
    }
)

MODIFIER_ALIASES: Mapping[str, str] = MappingProxyType(
    {"c": "ctrl", "control": "ctrl", "s": "shift", "a": "alt", "m": "alt", "meta": "alt"}
)

_NOTATION = re.compile(r"<([^<>]+|<)>|(.)", re.DOTALL)


def _normalize_key(key: str) -> str:
    if len(key) == 1:
        return key
    lowered = key.strip().lower()
    return KEY_ALIASES.get(lowered, lowered)


def _normalize_modifiers(modifiers: Iterable[str]) -> tuple[str, ...]:
    values = []
    for modifier in modifiers:
        cleaned = modifier.strip().lower()
        if cleaned:
            values.append(MODIFIER_ALIASES.get(cleaned, cleaned))
    return tuple(sorted(dict.fromkeys(values)))


@dataclass(frozen=True, slots=True)
class KeyStroke:
    """Single key press: a canonical key name plus sorted modifiers."""

    key: str
    modifiers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("key cannot be empty")
        object.__setattr__(self, "key", _normalize_key(self.key))
        object.__setattr__(self, "modifiers", _normalize_modifiers(self.modifiers))

    @property
    def token(self) -> str:
        if self.modifiers:
            return "+".join(self.modifiers) + "+" + self.key
        return self.key

    @property
    def is_typed_character(self) -> bool:
        """True for a printable character without ctrl/alt."""

        if len(self.key) != 1 or not self.key.isprintable():
            return False
        return not {"ctrl", "alt"} & set(self.modifiers)

    @classmethod
    def from_token(cls, token: str) -> "KeyStroke":
        """Inverse of ``token``: ``"ctrl+shift+left"`` back into a stroke."""

        if token == "+":
            return cls("+")
        if token.endswith("++"):
            return cls("+", tuple(token[:-2].split("+")))
        modifiers, _, key = token.rpartition("+")
        return cls(key, tuple(modifiers.split("+")) if modifiers else ())

    @classmethod
    def parse(cls, notation: str) -> "KeyStroke":
        strokes = parse_keys(notation)
        if len(strokes) != 1:
            raise ValueError(f"'{notation}' describes {len(strokes)} keys, expected 1")
        return strokes[0]


def parse_keys(notation: str) -> tuple[KeyStroke, ...]:
    """Parse Vim key notation such as ``"g<C-H>"`` or ``"<S-Left>"``."""

    strokes: list[KeyStroke] = []
    for match in _NOTATION.finditer(notation):
        special, plain = match.groups()
        if plain is not None:
            strokes.append(KeyStroke(plain))
            continue
        *mods, key = special.split("-") if len(special) > 1 else [special]
        if not key:
            # "<C-->" style: the key itself is a dash
            key = "-"
            mods = mods[:-1]
        if mods and len(key) == 1 and key.isalpha():
            key = key.lower()
        strokes.append(KeyStroke(key, tuple(mods)))
    return tuple(strokes)


@dataclass(frozen=True, slots=True)
class KeySequence:
    """Immutable, non-empty run of keystrokes."""

    strokes: tuple[KeyStroke, ...]
    timeout_ms: int = 1000

    def __post_init__(self) -> None:
        if not self.strokes:
            raise ValueError("KeySequence requires at least one stroke")

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(stroke.token for stroke in self.strokes)

    @property
    def first(self) -> KeyStroke:
        return self.strokes[0]

    @classmethod
    def parse(cls, notation: str, *, timeout_ms: int = 1000) -> "KeySequence":
        return cls(parse_keys(notation), timeout_ms=timeout_ms)


@dataclass(frozen=True, slots=True)
class WhenClause:
    """Boolean flag condition gating a binding."""

    flag: str
    expected: bool = True

    def __post_init__(self) -> None:
        if not self.flag:
            raise ValueError("flag cannot be empty")

    @classmethod
    def parse(cls, expression: str) -> "WhenClause":
        expr = expression.strip()
        if not expr:
            raise ValueError("expression cannot be empty")
        if expr.startswith("!"):
            return cls(expr[1:], False)
        return cls(expr)

    def evaluate(self, flags: Mapping[str, bool]) -> bool:
        return bool(flags.get(self.flag, False)) is self.expected


class HandlerKind(str, Enum):
    """Closed set of calling conventions the dispatcher knows about.

    ``COMMAND`` handlers take ``(context, invocation)``; ``MOTION`` handlers
    take ``(context, caret, count)`` and return a target offset; ``OPERATOR``
    handlers take ``(context, invocation, targets)``.
    """

    COMMAND = "command"
    MOTION = "motion"
    OPERATOR = "operator"


@dataclass(frozen=True, slots=True)
class ActionRef:
    """Named handler plus the calling convention it follows."""

    id: str
    handler: Callable[..., object]
    kind: HandlerKind = HandlerKind.COMMAND
    description: str = ""
    metadata: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ActionRef id cannot be empty")
        if not callable(self.handler):
            raise TypeError("handler must be callable")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def __call__(self, *args: object, **kwargs: object) -> object:
        return self.handler(*args, **kwargs)


@dataclass(frozen=True, slots=True)
class Binding:
    """Key sequence bound to an action inside one mapping scope."""

    id: str
    scope: MappingScope
    sequence: KeySequence
    action_id: str
    description: str = ""
    when: tuple[WhenClause, ...] = ()
    priority: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("binding id cannot be empty")
        if not self.action_id:
            raise ValueError("binding action_id cannot be empty")
        object.__setattr__(self, "scope", MappingScope(self.scope))
        object.__setattr__(
            self,
            "when",
            tuple(
                clause if isinstance(clause, WhenClause) else WhenClause.parse(str(clause))
                for clause in self.when
            ),
        )

    @property
    def when_map(self) -> Mapping[str, bool]:
        return MappingProxyType({clause.flag: clause.expected for clause in self.when})

    def allows(self, flags: Mapping[str, bool]) -> bool:
        return all(clause.evaluate(flags) for clause in self.when)

    @property
    def key_signature(self) -> str:
        return " ".join(self.sequence.tokens)


__all__ = [
    "ActionRef",
    "Binding",
    "HandlerKind",
    "KEY_ALIASES",
    "KeySequence",
    "KeyStroke",
    "WhenClause",
    "parse_keys",
]
