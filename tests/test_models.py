"""Tests for data models."""

import json

import pytest
from pydantic import ValidationError

from app.models.content import PartsContent, TextContent, UnknownContent, classify_content
from app.models.errors import ErrorDetail, ErrorEnvelope
from app.models.messages import ChatCompletionRequest, ImageUrlPart, Message, TextPart
from app.models.tokens import TokenCount


class TestMessageModels:
    """Tests for chat messages."""

    def test_message_keeps_extra_fields(self):
        """Test that provider specific fields are preserved."""
        message = Message(role="assistant", content=None, tool_calls=[{"id": "call_1"}])

        assert message.model_dump() == {"role": "assistant", "content": None, "tool_calls": [{"id": "call_1"}]}

    def test_message_is_immutable(self):
        """Test that messages cannot be changed in place."""
        message = Message(role="user", content="hi")

        with pytest.raises(ValidationError):
            message.content = "bye"  # type: ignore

    def test_message_accepts_any_role(self):
        """Test that the role set is left to the backend."""
        message = Message(role="developer", content="Be terse.")

        assert message.role == "developer"

    def test_message_requires_role(self):
        """Test that a message without a role is rejected."""
        with pytest.raises(ValidationError):
            Message(content="beep")  # type: ignore

    def test_request_from_json(self):
        """Test request parsing from JSON."""
        data = json.loads('{"model": "gpt-4o", "messages": [{"role": "user", "content": "Hello"}], "top_p": 0.5}')
        request = ChatCompletionRequest.model_validate(data)

        assert request.model == "gpt-4o"
        assert request.messages[0].content == "Hello"
        assert request.stream is None

    def test_backend_payload_replaces_messages(self):
        """Test that the payload carries the given messages and disables streaming."""
        request = ChatCompletionRequest(
            model="gpt-4o",
            messages=[Message(role="user", content=[{"type": "text", "text": "x"}])],
            stream=True,
            top_p=0.5,
        )

        payload = request.to_backend_payload([Message(role="user", content="x\n")])

        assert payload == {
            "model": "gpt-4o",
            "messages": [{"role": "user", "content": "x\n"}],
            "stream": False,
            "top_p": 0.5,
        }


class TestContentVariants:
    """Tests for content classification."""

    def test_string_is_text(self):
        """Test that strings are text content."""
        assert classify_content("hi") == TextContent("hi")

    def test_list_is_parts(self):
        """Test that lists are parsed into typed parts."""
        content = classify_content(
            [{"type": "text", "text": "a"}, {"type": "image_url", "image_url": {"url": "u", "detail": "low"}}, 7]
        )

        assert isinstance(content, PartsContent)
        assert content.parts == (TextPart(text="a"), ImageUrlPart(image_url={"url": "u"}), 7)
        assert content.text_parts() == [TextPart(text="a")]

    def test_non_string_text_is_coerced(self):
        """Test that a numeric text part keeps its value as text."""
        content = classify_content([{"type": "text", "text": 5}, {"type": "text", "text": None}])

        assert content.parts[0] == TextPart(text="5")
        assert content.parts[1] == {"type": "text", "text": None}

    def test_typed_parts_pass_through(self):
        """Test that already parsed parts are kept as they are."""
        part = TextPart(text="a")

        assert classify_content([part]).parts == (part,)

    @pytest.mark.parametrize("value", [None, 3, {"text": "x"}])
    def test_anything_else_is_unknown(self, value):
        """Test that other shapes are unknown content."""
        assert classify_content(value) == UnknownContent(value)


class TestResultModels:
    """Tests for token counts and error envelopes."""

    def test_token_count_wire_shape(self):
        """Test that only input and output are serialized."""
        count = TokenCount(input=5, output=2, error=None)

        assert count.as_dict() == {"input": 5, "output": 2}
        assert count.total == 7

    def test_error_envelope_uses_status_text_alias(self):
        """Test the camelCase wire name and omission of unset fields."""
        full = ErrorEnvelope(error=ErrorDetail(message="nope", status=404, status_text="Not Found"))
        bare = ErrorEnvelope(error=ErrorDetail(message="boom"))

        assert full.to_content() == {
            "error": {"message": "nope", "type": "error", "status": 404, "statusText": "Not Found"}
        }
        assert bare.to_content() == {"error": {"message": "boom", "type": "error"}}
