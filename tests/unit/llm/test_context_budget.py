"""Unit tests for context window budgeting."""

from inference_gateway.llm.context_budget import budget_history
from inference_gateway.llm.text_utils import estimate_tokens
from inference_gateway.models.chat_models import HistoryMessage
from inference_gateway.models.enums import Role, Sender

# 7 chars -> exactly 2 estimated tokens
TWO_TOKENS = "abcdefg"


def turn(text: str, sender: Sender = Sender.USER, images=None) -> HistoryMessage:
    return HistoryMessage(text=text, sender=sender, images=images)


def budget(history, context_window, system="", current="", margin=0):
    return budget_history(history, system, current, context_window, safety_margin=margin)


class TestBudgetHistory:
    def test_empty_history(self):
        assert budget([], context_window=4096) == []

    def test_keeps_everything_when_it_fits(self):
        history = [turn("one"), turn("two", Sender.ASSISTANT), turn("three")]
        result = budget(history, context_window=4096)
        assert [m.content for m in result] == ["one", "two", "three"]
        assert [m.role for m in result] == [Role.USER, Role.ASSISTANT, Role.USER]

    def test_keeps_newest_contiguous_suffix(self):
        history = [turn(f"{i:07d}") for i in range(5)]
        result = budget(history, context_window=5)
        # 2 + 2 fits below 5; a third turn would reach 6
        assert [m.content for m in result] == ["0000003", "0000004"]

    def test_boundary_is_strict(self):
        """A turn that would make used + cost reach the budget is dropped."""
        history = [turn(TWO_TOKENS), turn(TWO_TOKENS)]
        assert len(budget(history, context_window=4)) == 1
        assert len(budget(history, context_window=5)) == 2

    def test_stops_at_first_overflow(self):
        """An older short turn is not picked up after a long one overflows."""
        history = [turn("hi"), turn("x" * 400), turn(TWO_TOKENS)]
        result = budget(history, context_window=20)
        assert [m.content for m in result] == [TWO_TOKENS]

    def test_system_turns_are_skipped(self):
        history = [
            turn("question"),
            turn("Node offline", Sender.SYSTEM),
            turn("answer", Sender.ASSISTANT),
        ]
        result = budget(history, context_window=4096)
        assert [m.content for m in result] == ["question", "answer"]
        assert all(m.role is not Role.SYSTEM for m in result)

    def test_images_only_on_user_turns(self):
        history = [
            turn("look", Sender.USER, images=["aW1n"]),
            turn("nice", Sender.ASSISTANT, images=["aW1n"]),
        ]
        user, assistant = budget(history, context_window=4096)
        assert user.images == ["aW1n"]
        assert assistant.images is None

    def test_reserved_tokens_shrink_budget(self):
        history = [turn(TWO_TOKENS), turn(TWO_TOKENS)]
        system = "s" * 35  # 10 tokens
        assert len(budget(history, context_window=15, system=system)) == 2
        assert len(budget(history, context_window=15, system=system, margin=1)) == 1

    def test_never_exceeds_available(self):
        history = [turn("y" * n) for n in range(1, 60)]
        system, current, window, margin = "system prompt", "current", 120, 20
        result = budget_history(history, system, current, window, safety_margin=margin)
        available = window - estimate_tokens(system) - estimate_tokens(current) - margin
        assert sum(estimate_tokens(m.content) for m in result) < available

    def test_negative_budget_keeps_nothing(self):
        assert budget([turn("hello")], context_window=10, margin=400) == []
