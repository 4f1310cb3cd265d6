import pytest

from firecore.blockpoller.cursor import Cursor, SegmentState
from firecore.blockpoller.model import Block, BlockRef


def make_block(block_id: str, number: int, parent_id: str) -> Block:
    return Block(number=number, id=block_id, parent_id=parent_id, parent_num=number - 1)


def test_state_names():
    cursor = Cursor()
    assert str(cursor.state) == "CONTINUOUS"
    cursor.add_block(make_block("7a", 7, "6a"), False, False)
    cursor.not_connected_to_lib()
    assert str(cursor.state) == "INCOMPLETE"


def test_new_cursor_is_continuous():
    cursor = Cursor()
    assert cursor.state is SegmentState.CONTINUOUS
    assert cursor.segment_ref() is None


def test_continuous_segment_ref_follows_current_block():
    cursor = Cursor()
    block = make_block("101a", 101, "100a")
    cursor.add_block(block, False, False)
    assert cursor.current_block == block.as_ref()
    assert cursor.segment_ref() == block.as_ref()


def test_not_connected_pins_segment():
    cursor = Cursor()
    first = make_block("104b", 104, "103b")
    cursor.add_block(first, False, False)
    cursor.not_connected_to_lib()
    assert cursor.state is SegmentState.INCOMPLETE
    assert cursor.incomplete_segment == first.as_ref()

    second = make_block("103b", 103, "102b")
    cursor.add_block(second, False, False)
    cursor.not_connected_to_lib()
    assert cursor.current_block == second.as_ref()
    assert cursor.segment_ref() == first.as_ref()


def test_seen_block_and_parent_returns_to_continuous():
    cursor = Cursor()
    cursor.add_block(make_block("104b", 104, "103b"), False, False)
    cursor.not_connected_to_lib()

    cursor.add_block(make_block("103a", 103, "102a"), True, False)
    assert cursor.state is SegmentState.INCOMPLETE

    block = make_block("103a", 103, "102a")
    cursor.add_block(block, True, True)
    assert cursor.state is SegmentState.CONTINUOUS
    assert cursor.segment_ref() == block.as_ref()


def test_connected_to_lib_clears_segment():
    cursor = Cursor()
    cursor.add_block(make_block("104b", 104, "103b"), False, False)
    cursor.not_connected_to_lib()
    cursor.connected_to_lib()
    assert cursor.state is SegmentState.CONTINUOUS
    assert cursor.incomplete_segment is None


def test_incomplete_without_segment_raises():
    cursor = Cursor(state=SegmentState.INCOMPLETE)
    with pytest.raises(RuntimeError):
        cursor.segment_ref()


def test_not_connected_without_block_raises():
    with pytest.raises(RuntimeError):
        Cursor().not_connected_to_lib()


def test_segment_is_a_copy_of_current_block():
    cursor = Cursor(current_block=BlockRef("7a", 7))
    cursor.not_connected_to_lib()
    cursor.current_block = BlockRef("6a", 6)
    assert cursor.segment_ref() == BlockRef("7a", 7)