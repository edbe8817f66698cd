"""Token accounting for chat message batches."""

import logging
import time
from collections.abc import Callable, Sequence

import tiktoken

from app.models.content import PartsContent, TextContent, UnknownContent, classify_content, stringify
from app.models.messages import Message
from app.models.tokens import TokenCount
from app.utils.logging import get_logger

logger = get_logger(__name__)

TokenCounter = Callable[[Sequence[Message]], int]

EMPTY_CONTENT_PLACEHOLDER = "Empty content after conversion."
COUNTING_ERROR_PLACEHOLDER = "Error: Unable to process message content for token counting."

# Chat framing overhead, see OpenAI's "counting tokens for chat" guide
TOKENS_PER_MESSAGE = 3
TOKENS_PER_NAME = 1
REPLY_PRIMING_TOKENS = 3


class ChatTokenCounter:
    """Role-aware token counter for chat message batches."""

    tokenizer: tiktoken.Encoding | None = None

    def __init__(self, model: str = "gpt-4o", reload_interval: float = 60.0):
        """Initialize the counter.

        Args:
            model: Model whose encoding is used for counting
            reload_interval: Seconds between attempts to load a missing encoding
        """
        self.model = model
        self.reload_interval = reload_interval
        self._last_load_attempt = 0.0
        self.load_tokenizer()

    def load_tokenizer(self) -> bool:
        """Try to load the model's encoding; return whether one is available."""
        self._last_load_attempt = time.monotonic()
        try:
            self.tokenizer = tiktoken.encoding_for_model(self.model)
        except Exception as e:
            logger.warning(f"Tokenizer for {self.model} unavailable, falling back to length estimate: {e}")
            self.tokenizer = None
        return self.tokenizer is not None

    def count_text(self, text: str) -> int:
        """Count tokens in a piece of text."""
        if self.tokenizer is None and time.monotonic() - self._last_load_attempt >= self.reload_interval:
            self.load_tokenizer()
        if self.tokenizer is None:
            # Fallback: roughly 4 characters per token
            return len(text) // 4
        return len(self.tokenizer.encode(text, disallowed_special=()))

    def __call__(self, messages: Sequence[Message]) -> int:
        if not messages:
            return 0

        total = REPLY_PRIMING_TOKENS
        for message in messages:
            total += TOKENS_PER_MESSAGE
            total += self.count_text(message.role)
            total += self.count_text(message.content)
            name = (message.model_extra or {}).get("name")
            if name:
                total += self.count_text(str(name)) + TOKENS_PER_NAME
        return total


def _ensure_text_content(message: Message, log: logging.Logger) -> Message:
    """Make sure ``message.content`` is a string before it is counted."""
    match classify_content(message.content):
        case TextContent():
            return message

        case PartsContent() as parts:
            log.warning(f"Tokenizer - Non-string content found in message with role {message.role}, converting.")
            try:
                text = "".join(part.text + "\n" for part in parts.text_parts() if part.text)
            except Exception:
                text = COUNTING_ERROR_PLACEHOLDER
            return message.model_copy(update={"content": text or EMPTY_CONTENT_PLACEHOLDER})

        case UnknownContent(value=value):
            log.warning(f"Tokenizer - Non-string content found in message with role {message.role}, converting.")
            try:
                text = stringify(value)
            except Exception:
                text = COUNTING_ERROR_PLACEHOLDER
            return message.model_copy(update={"content": text})


def get_token_count(
    messages: Sequence[Message],
    counter: TokenCounter | None = None,
    log: logging.Logger | None = None,
) -> TokenCount:
    """Count input and output tokens for a message batch.

    Assistant messages make up the output; every other role is input. Token
    counts are best-effort: any failure is logged and reported as zero
    counts so that the request can still be forwarded.

    Args:
        messages: Messages to count, ideally already normalized
        counter: Token oracle (defaults to the shared ``ChatTokenCounter``)
        log: Logger to report to (defaults to this module's logger)

    Returns:
        Token counts for the batch
    """
    log = log or logger
    try:
        count = counter or get_token_counter()
        valid_messages = [_ensure_text_content(message, log) for message in messages]

        input_messages = [m for m in valid_messages if m.role != "assistant"]
        output_messages = [m for m in valid_messages if m.role == "assistant"]

        result = TokenCount(input=count(input_messages), output=count(output_messages))
        log.debug(f"Token count - input: {result.input}, output: {result.output}")
        return result

    except Exception as e:
        log.error(f"Error counting tokens: {e}", exc_info=True)
        return TokenCount(input=0, output=0, error=str(e))


_token_counter: ChatTokenCounter | None = None


def get_token_counter() -> ChatTokenCounter:
    """Get or create the shared token counter."""
    global _token_counter
    if _token_counter is None:
        _token_counter = ChatTokenCounter()
    return _token_counter
