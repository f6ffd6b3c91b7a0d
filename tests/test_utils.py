import pytest

from common.utils import parse_block_height


@pytest.mark.parametrize("text,expected", [
    ("129190044", 129_190_044),
    ("129_190_044", 129_190_044),
    ("129,190,044", 129_190_044),
    ("129.190.044", 129_190_044),
    ("129 190 044", 129_190_044),
    ("0", 0),
])
def test_parse_block_height(text, expected):
    assert parse_block_height(text) == expected


@pytest.mark.parametrize("text", ["", "-5", "12a", "１２"])
def test_parse_block_height_rejects(text):
    with pytest.raises(ValueError):
        parse_block_height(text)
