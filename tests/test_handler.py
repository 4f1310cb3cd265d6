import io
from datetime import datetime, timezone

import pytest

from firecore.blockpoller.handler import FireBlockHandler, clean
from firecore.blockpoller.model import Block


@pytest.mark.parametrize(
    "type_url, expected",
    [
        ("type.googleapis.com/sf.bstream.v2.Block", "sf.bstream.v2.Block"),
        ("sf.bstream.v2.Block", "sf.bstream.v2.Block"),
    ],
)
def test_clean(type_url, expected):
    assert clean(type_url) == expected


def test_init_writes_header():
    out = io.StringIO()
    handler = FireBlockHandler("type.googleapis.com/sf.bstream.v2.Block", out)
    handler.init()
    assert out.getvalue() == "FIRE INIT 3.0 sf.bstream.v2.Block\n"


def test_handle_writes_block_line():
    out = io.StringIO()
    handler = FireBlockHandler("sf.bstream.v2.Block", out)
    block = Block(
        number=101,
        id="101a",
        parent_id="100a",
        parent_num=100,
        lib_num=99,
        timestamp=datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc),
        payload_type_url="type.googleapis.com/sf.bstream.v2.Block",
        payload_value=b"hello",
    )
    handler.handle(block)
    assert out.getvalue() == "FIRE BLOCK 101 101a 100 100a 99 1000000000 aGVsbG8=\n"


def test_handle_without_timestamp_uses_epoch():
    out = io.StringIO()
    handler = FireBlockHandler("sf.bstream.v2.Block", out)
    handler.handle(Block(number=0, id="0a", payload_type_url="sf.bstream.v2.Block"))
    assert out.getvalue() == "FIRE BLOCK 0 0a 0  0 0 \n"


def test_handle_rejects_other_type():
    out = io.StringIO()
    handler = FireBlockHandler("sf.bstream.v2.Block", out)
    with pytest.raises(ValueError, match="does not match"):
        handler.handle(Block(number=1, id="1a", payload_type_url="sf.other.Block"))
    assert out.getvalue() == ""