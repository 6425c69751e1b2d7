"""
Tests for token estimation.
"""

from unittest.mock import patch

from utils import token_estimator
from utils.token_estimator import estimate_tokens


class _FakeEncoding:
    def encode(self, text, disallowed_special=()):
        return text.split(",")


def test_counts_compact_json():
    with patch.object(token_estimator, "_get_encoding", return_value=_FakeEncoding()):
        # '{"a":1,"b":2}' splits into two pieces
        assert estimate_tokens({"a": 1, "b": 2}) == 2


def test_strings_are_encoded_as_is():
    with patch.object(token_estimator, "_get_encoding", return_value=_FakeEncoding()):
        assert estimate_tokens("a,b,c") == 3


def test_falls_back_to_character_heuristic():
    with patch.object(token_estimator, "_get_encoding", side_effect=OSError("no network")):
        # 13 characters of compact JSON -> ceil(13 / 4)
        assert estimate_tokens({"a": 1, "b": 2}) == 4
