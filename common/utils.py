"""
common.utils

Utility helper functions.
"""
_SEPARATORS = ("_", ",", " ", ".")


def parse_block_height(text: str) -> int:
    """
    Parse a human typed block height such as "129_190_044" or "129,190,044".
    Raises ValueError for anything that is not a non negative integer.
    """
    s = str(text)
    for sep in _SEPARATORS:
        s = s.replace(sep, "")
    if not (s.isascii() and s.isdigit()):
        raise ValueError(f"invalid block height: {text!r}")
    return int(s)
