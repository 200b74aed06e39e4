"""Keystroke dispatcher: counts, multi-key sequences and handler kinds."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Dict, List, Optional

from modal_engine.host.protocol import (
    line_end_for_offset,
    line_start_for_offset,
    normalize_offset,
)
from modal_engine.keymaps import (
    ActionRef,
    HandlerKind,
    KeymapRegistry,
    KeymapResolver,
    ResolutionMatch,
    load_default_keymaps,
)
from modal_engine.runtime import telemetry

from .base_mode import (
    Invocation,
    KeyInput,
    Mode,
    ModeContext,
    ModeResult,
    OperatorTarget,
    SubMode,
)

COUNT_SCOPES = (Mode.NORMAL, Mode.VISUAL, Mode.OP_PENDING)


@dataclass
class PendingTimeout:
    deadline: float
    timeout_ms: int
    generation: int


class ModeManager:
    """Routes key events of one session to the action bound in the current scope.

    The scope is read from the top of the session's mode stack on every key.
    Handlers are looked up once and called according to their
    ``HandlerKind``; there is no per-mode handler object.
    """

    def __init__(
        self,
        context: ModeContext,
        *,
        keymap_registry: KeymapRegistry | None = None,
        keymap_resolver: KeymapResolver | None = None,
        load_defaults: bool = True,
    ) -> None:
        self.context = context
        self.logger = telemetry.get_logger("modal_engine.modes")
        self.keymap_registry = keymap_registry or KeymapRegistry(
            logger_name="modal_engine.keymaps"
        )
        if load_defaults and keymap_registry is None:
            load_default_keymaps(self.keymap_registry)
        self.keymap_resolver = keymap_resolver or KeymapResolver(
            self.keymap_registry, logger_name="modal_engine.keymaps"
        )
        self.context.extras.setdefault("keymap_registry", self.keymap_registry)
        self.context.extras.setdefault("keymap_resolver", self.keymap_resolver)
        self.context.extras.setdefault("keymap_flags", {})
        self.context.extras.setdefault("mode_manager", self)
        self._pending_tokens: List[str] = []
        self._pending_keys: List[KeyInput] = []
        self._count = ""
        self._timeout: Optional[PendingTimeout] = None
        self._timer_counter = 0

    @property
    def session(self):
        return self.context.session

    @property
    def mode(self) -> Mode:
        return self.session.stack.mode

    @property
    def sub_mode(self) -> SubMode:
        return self.session.stack.sub_mode

    @property
    def pending(self) -> tuple[str, ...]:
        return tuple(self._pending_tokens)

    @property
    def count_prefix(self) -> str:
        return self._count

    def flags(self) -> Dict[str, bool]:
        """Host state consulted by ``when`` clauses, re-read on every key."""

        host = self.session.host
        flags = {
            "file_editor": bool(host.is_file_editor),
            "one_line": bool(host.is_one_line_mode),
            "template_active": bool(host.is_template_active()),
            "lookup_active": bool(host.is_lookup_active()),
        }
        overrides = self.context.extras.get("keymap_flags")
        if isinstance(overrides, dict):
            flags.update({str(key): bool(value) for key, value in overrides.items()})
        return flags

    def handle_key(self, key: KeyInput) -> ModeResult:
        mode = self.mode
        with telemetry.span(
            name=f"mode::{mode.value}",
            component=True,
            metadata={"key": key.key, "mode": mode.value},
        ):
            result = self._dispatch(key)
        return self._after_result(result)

    def reset(self) -> None:
        """Drop any half-typed count or key sequence."""

        self._pending_tokens.clear()
        self._pending_keys.clear()
        self._count = ""
        self.cancel_timeout()

    def _dispatch(self, key: KeyInput) -> ModeResult:
        stroke = key.stroke
        if not self._pending_tokens and self._is_count_digit(stroke.key, stroke.modifiers):
            self._count += stroke.key
            return ModeResult(consumed=True, status="count")

        tokens = [*self._pending_tokens, stroke.token]
        resolution = self.keymap_resolver.resolve(
            self.session.stack.scope, tokens, flags=self.flags()
        )
        if resolution.status == "pending":
            self._pending_tokens = tokens
            self._pending_keys.append(key)
            return ModeResult(
                consumed=True,
                status="pending",
                timeout_ms=resolution.timeout_ms
                or self.session.config.pending_timeout_ms,
            )

        if resolution.status == "match" and resolution.match is not None:
            keys = (*self._pending_keys, key)
            raw_count = self._take_count()
            self._pending_tokens.clear()
            self._pending_keys.clear()
            return self._run(resolution.match, keys, raw_count)

        if self._pending_tokens:
            # The prefix led nowhere; retry the last key on its own.
            self._pending_tokens.clear()
            self._pending_keys.clear()
            return self._dispatch(key)

        self._count = ""
        return self._unbound(key)

    def _is_count_digit(self, key: str, modifiers: tuple[str, ...]) -> bool:
        if modifiers or len(key) != 1 or not key.isdigit():
            return False
        if self.mode not in COUNT_SCOPES:
            return False
        return key != "0" or bool(self._count)

    def _take_count(self) -> int:
        raw = int(self._count) if self._count else 0
        self._count = ""
        return raw

    def _unbound(self, key: KeyInput) -> ModeResult:
        stack = self.session.stack
        if stack.in_insert:
            return ModeResult(consumed=False, status="passthrough")
        if stack.in_select and key.stroke.is_typed_character:
            self.context.visual.replace_selection(key.text or key.key)
            return ModeResult(consumed=True, status="select_replace")
        return ModeResult(consumed=True, status="miss", message=key.key)

    def _run(
        self, match: ResolutionMatch, keys: tuple[KeyInput, ...], raw_count: int
    ) -> ModeResult:
        action = match.action
        invocation = Invocation(
            action_id=action.id,
            binding_id=match.binding.id,
            keys=keys,
            count=max(raw_count, 1),
            raw_count=raw_count,
        )
        if action.kind is HandlerKind.MOTION:
            result = self._run_motion(action, invocation)
        elif action.kind is HandlerKind.OPERATOR:
            result = self._run_operator(action, invocation)
        else:
            result = action(self.context, invocation)
        if isinstance(result, ModeResult):
            return result
        return ModeResult(consumed=True, status=action.id)

    def _run_motion(self, action: ActionRef, invocation: Invocation) -> ModeResult:
        session = self.session
        visual = self.context.visual
        if session.stack.in_visual_block:
            carets = [session.primary_caret()]
        else:
            carets = session.carets()
        moved = 0
        for caret in carets:
            target = action(self.context, caret, invocation.count)
            if target is None:
                continue
            visual.move_caret(caret, int(target))
            moved += 1
        return ModeResult(consumed=True, status="motion" if moved else "motion_failed")

    def _run_operator(self, action: ActionRef, invocation: Invocation) -> ModeResult:
        session = self.session
        visual = self.context.visual
        linewise = bool(action.metadata.get("linewise"))
        in_visual = session.stack.mode in (Mode.VISUAL, Mode.SELECT)
        if in_visual:
            for caret in session.carets():
                session.caret_state(caret).last_visual_operator_range = (
                    visual.compute_operator_range(caret, linewise_motion=linewise)
                )
        targets = self._operator_targets(invocation, linewise, in_visual)
        result = action(self.context, invocation, targets)

        if in_visual:
            if session.stack.in_visual:
                visual.exit_visual()
            else:
                visual.exit_select(adjust_caret_position=False)
            if targets:
                primary = session.primary_caret()
                first = min(target.start for target in targets)
                with session.guard.hold():
                    primary.move_to_offset(
                        normalize_offset(session.host, first, allow_end=False)
                    )
        if action.metadata.get("then_insert"):
            visual.enter_insert()
        return result if isinstance(result, ModeResult) else ModeResult(consumed=True)

    def _operator_targets(
        self, invocation: Invocation, linewise: bool, in_visual: bool
    ) -> List[OperatorTarget]:
        session = self.session
        host = session.host
        targets: List[OperatorTarget] = []
        for caret in session.carets():
            if in_visual:
                start, end = caret.selection_start, caret.selection_end
                if start == end:
                    continue
                kind = SubMode.LINEWISE if linewise else self.sub_mode
                if linewise:
                    start = line_start_for_offset(host, start)
                    end = min(
                        line_end_for_offset(host, max(start, end - 1)) + 1,
                        host.text_length,
                    )
            else:
                line = host.offset_to_position(caret.offset).line
                last = min(line + invocation.count - 1, max(host.line_count - 1, 0))
                start = host.line_start_offset(line)
                end = min(host.line_end_offset(last) + 1, host.text_length)
                kind = SubMode.LINEWISE
            targets.append(OperatorTarget(caret, start, end, kind))
        return targets

    def _after_result(self, result: ModeResult) -> ModeResult:
        if result.status == "pending" and result.timeout_ms:
            self.arm_timeout(result.timeout_ms)
        else:
            self.cancel_timeout()
        return result

    def arm_timeout(self, timeout_ms: int) -> None:
        self._timer_counter += 1
        self._timeout = PendingTimeout(
            deadline=time.monotonic() + (timeout_ms / 1000.0),
            timeout_ms=timeout_ms,
            generation=self._timer_counter,
        )

    def cancel_timeout(self) -> None:
        self._timeout = None

    def process_timeouts(self) -> Optional[ModeResult]:
        timer = self._timeout
        if timer is None or timer.deadline > time.monotonic():
            return None
        return self._trigger_timeout(timer.generation)

    def force_timeout(self) -> Optional[ModeResult]:
        timer = self._timeout
        if timer is None:
            return None
        return self._trigger_timeout(timer.generation)

    def _trigger_timeout(self, generation: int) -> ModeResult:
        timer = self._timeout
        if timer is None or timer.generation != generation:
            return ModeResult(consumed=False, status="timeout")
        self._timeout = None
        with telemetry.span(
            name=f"mode_timeout::{self.mode.value}",
            component=True,
            metadata={"mode": self.mode.value, "pending": " ".join(self._pending_tokens)},
        ):
            self._pending_tokens.clear()
            self._pending_keys.clear()
            self._count = ""
        return ModeResult(consumed=True, status="timeout")


__all__ = ["ModeManager", "PendingTimeout"]
