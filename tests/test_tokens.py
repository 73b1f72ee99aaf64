"""Tests for chunkflow.tokens — heuristic token estimation."""

from __future__ import annotations

from chunkflow.schemas.messages import Message, OpaquePart, TextPart
from chunkflow.tokens import TokenEstimator


class TestEstimate:
    def test_empty_text_costs_nothing(self):
        assert TokenEstimator().estimate("") == 0

    def test_whitespace_only_costs_nothing(self):
        assert TokenEstimator().estimate("   \n\t ") == 0

    def test_scales_word_count_and_rounds_up(self):
        est = TokenEstimator()
        assert est.estimate("one") == 2
        assert est.estimate("hello world") == 3
        assert est.estimate(" ".join(["word"] * 10)) == 13

    def test_monotonic_in_word_count(self):
        est = TokenEstimator()
        words = "the quick brown fox jumps over the lazy dog again and again".split()
        costs = [est.estimate(" ".join(words[:n])) for n in range(len(words) + 1)]
        assert costs == sorted(costs)

    def test_custom_factor(self):
        assert TokenEstimator(words_to_tokens=2.0).estimate("a b c") == 6


class TestEstimateMessage:
    def test_plain_text_adds_overhead(self):
        msg = Message(role="user", content="hello world")
        assert TokenEstimator().estimate_message(msg) == 53

    def test_empty_message_is_overhead_only(self):
        msg = Message(role="user", content="")
        assert TokenEstimator().estimate_message(msg) == 50

    def test_opaque_parts_add_nothing(self):
        msg = Message(
            role="user",
            content=[TextPart(text="hello world"), OpaquePart(ref="https://x/img.png")],
        )
        assert TokenEstimator().estimate_message(msg) == 53

    def test_multiple_text_parts_summed(self):
        msg = Message(
            role="user",
            content=[TextPart(text="one"), TextPart(text="hello world")],
        )
        assert TokenEstimator().estimate_message(msg) == 2 + 3 + 50

    def test_estimate_messages_sums(self):
        est = TokenEstimator()
        msgs = [
            Message(role="user", content="hello world"),
            Message(role="assistant", content="one"),
        ]
        assert est.estimate_messages(msgs) == 53 + 52

    def test_custom_overhead(self):
        est = TokenEstimator(message_overhead=10)
        assert est.message_overhead == 10
        assert est.estimate_message(Message(role="user", content="one")) == 12


class TestCharEstimates:
    def test_estimate_chars_rounds_up(self):
        est = TokenEstimator()
        assert est.estimate_chars("") == 0
        assert est.estimate_chars("abcd") == 1
        assert est.estimate_chars("abcde") == 2

    def test_words_within_never_overshoots(self):
        est = TokenEstimator()
        for budget in range(1, 200):
            words = est.words_within(budget)
            assert est.estimate(" ".join(["w"] * words)) <= budget

    def test_words_within_zero_budget(self):
        assert TokenEstimator().words_within(0) == 0
        assert TokenEstimator().words_within(-5) == 0
