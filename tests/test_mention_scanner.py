import pytest

from eduhive.utils.mention_scanner import (
    find_open_token,
    is_open_token,
    is_valid_username,
    mention_spans,
    scan_committed_mentions,
)


class TestFindOpenToken:
    def test_token_under_caret(self):
        token = find_open_token("hello @ali", 10)
        assert token is not None
        assert token.token == "ali"
        assert token.start == 6
        assert token.end == 10

    def test_bare_at_is_open_with_empty_token(self):
        token = find_open_token("hey @", 5)
        assert token is not None
        assert token.token == ""
        assert token.start == 4

    def test_whitespace_closes_the_token(self):
        assert find_open_token("@alice thanks", 13) is None

    def test_no_at_sign(self):
        assert find_open_token("no mentions here", 5) is None

    def test_disallowed_character_closes_the_token(self):
        assert find_open_token("mail @bob!", 10) is None

    def test_username_punctuation_is_allowed(self):
        token = find_open_token("@first.last-name_2", 18)
        assert token.token == "first.last-name_2"

    def test_caret_in_middle_uses_text_before_caret(self):
        token = find_open_token("@alice and more", 3)
        assert token.token == "al"
        assert token.end == 3

    def test_adjacent_tokens_anchor_on_last_at(self):
        token = find_open_token("@alice@bo", 9)
        assert token.token == "bo"
        assert token.start == 6

    def test_caret_past_end_is_clamped(self):
        token = find_open_token("@ann", 100)
        assert token.token == "ann"
        assert token.end == 4

    def test_negative_caret(self):
        assert find_open_token("@ann", -1) is None

    def test_caret_at_start(self):
        assert find_open_token("@ann", 0) is None

    @pytest.mark.parametrize("text,caret,expected", [
        ("@a", 2, "a"),
        ("x @a b", 6, None),
        ("email me@site", 13, "site"),
        ("@ä", 2, None),
    ])
    def test_open_token_matches_substring_rule(self, text, caret, expected):
        token = find_open_token(text, caret)
        assert (token.token if token else None) == expected


def test_committed_mentions_are_deduplicated_in_order():
    assert scan_committed_mentions("@bob hi @alice and @bob again") == ["bob", "alice"]


def test_committed_mentions_scenario_b():
    assert scan_committed_mentions("@alice @bob thanks!") == ["alice", "bob"]


def test_committed_mentions_ignore_bare_at():
    assert scan_committed_mentions("price @ 5 @") == []


def test_committed_mentions_of_empty_text():
    assert scan_committed_mentions("") == []
    assert scan_committed_mentions(None) == []


def test_username_helpers():
    assert is_valid_username("alice_01")
    assert not is_valid_username("")
    assert not is_valid_username("has space")
    assert is_open_token("")
    assert not is_open_token("a b")


def test_mention_spans_mark_the_assistant():
    spans = mention_spans("ask @eduhive about @alice")
    assert [(s.username, s.position_start, s.position_end, s.is_assistant) for s in spans] == [
        ("eduhive", 4, 12, True),
        ("alice", 19, 25, False),
    ]
