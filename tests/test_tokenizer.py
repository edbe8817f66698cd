"""Tests for token accounting."""

from unittest.mock import Mock, patch

import pytest

from app.models.messages import Message
from app.services.tokenizer import ChatTokenCounter, get_token_count, get_token_counter


def recording_counter(calls: list):
    """Build a counter that records each group and charges 10 tokens per message."""

    def count(messages):
        calls.append(list(messages))
        return 10 * len(messages)

    return count


class TestTokenPartition:
    """Tests for the input/output split."""

    def test_assistant_messages_are_output(self):
        """Test that only assistant messages count as output, regardless of order."""
        calls: list = []
        messages = [
            Message(role="assistant", content="a1"),
            Message(role="user", content="u1"),
            Message(role="user", content="u2"),
            Message(role="assistant", content="a2"),
            Message(role="user", content="u3"),
        ]

        result = get_token_count(messages, counter=recording_counter(calls))

        assert result.as_dict() == {"input": 30, "output": 20}
        assert [m.content for m in calls[0]] == ["u1", "u2", "u3"]
        assert [m.content for m in calls[1]] == ["a1", "a2"]
        assert result.error is None

    def test_system_and_tool_messages_are_input(self):
        """Test that every non-assistant role is input."""
        calls: list = []
        messages = [
            Message(role="system", content="s"),
            Message(role="tool", content="t", tool_call_id="call_1"),
        ]

        result = get_token_count(messages, counter=recording_counter(calls))

        assert result.as_dict() == {"input": 20, "output": 0}
        assert calls[1] == []

    def test_non_string_content_is_flattened_before_counting(self):
        """Test that structured content reaching the accountant is converted to text."""
        calls: list = []
        messages = [
            Message(role="user", content=[{"type": "text", "text": "A"}, {"type": "text", "text": "B"}]),
            Message(role="user", content=[{"type": "image_url", "image_url": {"url": "u"}}]),
            Message(role="user", content=None),
        ]

        get_token_count(messages, counter=recording_counter(calls))

        assert [m.content for m in calls[0]] == ["A\nB\n", "Empty content after conversion.", ""]


class TestTokenCountFallback:
    """Tests for failure handling."""

    def test_counter_failure_returns_zero_counts(self):
        """Test that a failing oracle yields zero counts instead of raising."""
        counter = Mock(side_effect=RuntimeError("tokenizer exploded"))
        log = Mock()

        result = get_token_count([Message(role="user", content="hi")], counter=counter, log=log)

        assert result.as_dict() == {"input": 0, "output": 0}
        assert result.error == "tokenizer exploded"
        log.error.assert_called_once()

    def test_empty_batch(self):
        """Test that an empty batch counts zero tokens."""
        assert get_token_count([]).as_dict() == {"input": 0, "output": 0}


class TestChatTokenCounter:
    """Tests for the default role-aware counter."""

    @pytest.fixture
    def counter(self):
        """Counter whose tokenizer yields one token per character."""
        counter = ChatTokenCounter()
        counter.tokenizer = Mock()
        counter.tokenizer.encode.side_effect = lambda text, **kwargs: list(text)
        return counter

    def test_counts_framing_role_and_content(self, counter):
        """Test per-message overhead plus reply priming."""
        # 3 priming + 3 framing + len("user") + len("hi")
        assert counter([Message(role="user", content="hi")]) == 12

    def test_name_adds_tokens(self, counter):
        """Test that a named message is charged for its name."""
        unnamed = counter([Message(role="user", content="hi")])
        named = counter([Message(role="user", content="hi", name="bob")])

        assert named - unnamed == len("bob") + 1

    def test_role_affects_count(self, counter):
        """Test that the role contributes to the count."""
        assert counter([Message(role="assistant", content="hi")]) > counter([Message(role="user", content="hi")])

    def test_empty_group_is_zero(self, counter):
        """Test that an empty group costs nothing."""
        assert counter([]) == 0

    def test_falls_back_without_tokenizer(self):
        """Test the length-based estimate when no encoding can be loaded."""
        counter = ChatTokenCounter()

        assert counter.tokenizer is None
        assert counter.count_text("a" * 40) == 10

    def test_reloads_encoding_after_failure(self):
        """Test that a failed encoding load is retried once the interval has passed."""
        counter = ChatTokenCounter(reload_interval=0)
        assert counter.tokenizer is None

        encoding = Mock()
        encoding.encode.side_effect = lambda text, **kwargs: list(text)
        with patch("app.services.tokenizer.tiktoken.encoding_for_model", return_value=encoding):
            assert counter.count_text("abcd") == 4

        assert counter.tokenizer is encoding

    def test_does_not_reload_within_interval(self):
        """Test that the fallback is used without reloading before the interval elapses."""
        counter = ChatTokenCounter(reload_interval=3600)

        with patch("app.services.tokenizer.tiktoken.encoding_for_model") as encoding_for_model:
            assert counter.count_text("a" * 8) == 2

        encoding_for_model.assert_not_called()

    def test_shared_counter_is_reused(self):
        """Test that the module keeps a single shared counter."""
        assert get_token_counter() is get_token_counter()
