from __future__ import annotations

import pytest

from modal_engine.host import MemoryEditor
from modal_engine.selection import BlockSegment, block_segments, compute_bounds, is_block

GRID = "abcdefghij\n" * 3


def make_editor(text: str = GRID) -> MemoryEditor:
    return MemoryEditor(text)


def test_aligned_spans_on_consecutive_lines_form_a_block() -> None:
    editor = make_editor()
    spans = [(0, 3), (11, 14), (22, 25)]

    assert is_block(editor, spans)
    assert compute_bounds(editor, spans) == (0, 25)


def test_span_order_does_not_matter() -> None:
    editor = make_editor()

    assert is_block(editor, [(22, 25), (3, 0), (11, 14)])


def test_gap_between_lines_is_not_a_block() -> None:
    editor = make_editor()

    assert not is_block(editor, [(0, 3), (22, 25)])


def test_different_start_columns_are_not_a_block() -> None:
    editor = make_editor()

    assert not is_block(editor, [(0, 3), (12, 14)])


def test_span_crossing_a_line_is_not_a_block() -> None:
    editor = make_editor()

    assert not is_block(editor, [(0, 13), (11, 14)])


def test_short_lines_are_clamped_to_their_length() -> None:
    editor = make_editor("abcdef\nab\nabcdef")

    assert is_block(editor, [(1, 4), (8, 9), (11, 14)])
    assert not is_block(editor, [(1, 4), (8, 8), (11, 14)])


def test_end_at_column_zero_is_pulled_back_onto_the_line() -> None:
    editor = make_editor()

    assert is_block(editor, [(5, 11), (16, 21)])


def test_empty_selection_list() -> None:
    editor = make_editor()

    assert not is_block(editor, [])
    with pytest.raises(ValueError):
        compute_bounds(editor, [])


def test_block_segments_cover_every_line_of_the_rectangle() -> None:
    editor = make_editor()

    segments = block_segments(editor, 24, 1, 1)

    assert segments == [
        BlockSegment(0, 1, 3),
        BlockSegment(1, 12, 14),
        BlockSegment(2, 23, 25),
    ]


def test_block_segments_exclusive_and_to_line_end() -> None:
    editor = make_editor()

    assert block_segments(editor, 1, 13, 0) == [BlockSegment(0, 1, 2), BlockSegment(1, 12, 13)]
    assert block_segments(editor, 1, 13, 1, to_line_end=True) == [
        BlockSegment(0, 1, 10),
        BlockSegment(1, 12, 21),
    ]


def test_block_segments_clamp_short_lines() -> None:
    editor = make_editor("abcdef\nab\nabcdef")

    assert block_segments(editor, 1, 14, 1) == [
        BlockSegment(0, 1, 5),
        BlockSegment(1, 8, 9),
        BlockSegment(2, 11, 15),
    ]
