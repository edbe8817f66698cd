"""Message content normalization.

Every message leaving this module has plain-text ``content``. Structured
content is flattened, and an inline ``file_path:`` directive in text content
is replaced by the referenced file's text. Nothing in here raises: failures
turn into descriptive text inside the message.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from app.models.content import PartsContent, TextContent, UnknownContent, classify_content, stringify
from app.models.messages import ImageUrlPart, Message, NormalizationResult, TextPart
from app.utils.logging import get_logger

logger = get_logger(__name__)

FILE_PATH_MARKER = "file_path:"
EMPTY_CONTENT_PLACEHOLDER = "Empty content after conversion."
PROCESSING_ERROR_PLACEHOLDER = "Error: Unable to process message content."


def _log_prefix(index: int | None) -> str:
    return f"Message {index}: " if index is not None else "Message: "


def _with_content(message: Message, content: str, diagnostic: str | None = None) -> NormalizationResult:
    return NormalizationResult(message=message.model_copy(update={"content": content}), diagnostic=diagnostic)


def _resolve_file_reference(message: Message, text: str, prefix: str, log: logging.Logger) -> NormalizationResult:
    """Replace the first file directive in ``text`` with the file's content."""
    marker_start = text.index(FILE_PATH_MARKER)
    path_start = marker_start + len(FILE_PATH_MARKER)
    path_end = text.find("\n", path_start)
    if path_end == -1:
        path_end = len(text)

    file_path = text[path_start:path_end].strip()
    if not file_path:
        log.warning(f"{prefix}Empty file path provided after marker.")
        return _with_content(message, f"{text}\nError: Empty file path provided.", "empty file path")

    try:
        file_content = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError, ValueError) as e:
        log.error(f"{prefix}Failed to read file {file_path}: {e}")
        return _with_content(
            message,
            f"{text}\nError: Unable to read file content. Details: {e}",
            f"unable to read {file_path}: {e}",
        )

    log.info(f"{prefix}File content loaded from {file_path}.")
    updated = f"{text[:marker_start]}File content:\n{file_content}{text[path_end:]}"
    return _with_content(message, updated)


def _flatten_parts(content: PartsContent) -> str:
    flattened = ""
    for part in content.parts:
        if isinstance(part, TextPart) and part.text:
            flattened += part.text + "\n"
        elif isinstance(part, ImageUrlPart) and part.image_url.url:
            flattened += f"[Image: {part.image_url.url}]\n"
    return flattened or EMPTY_CONTENT_PLACEHOLDER


def normalize_message(
    message: Message, index: int | None = None, log: logging.Logger | None = None
) -> NormalizationResult:
    """Normalize one message's content into plain text.

    Args:
        message: Message to normalize
        index: Position in the batch, only used for log context
        log: Logger to report to (defaults to this module's logger)

    Returns:
        The new message, plus a diagnostic when the content had to be degraded
    """
    log = log or logger
    prefix = _log_prefix(index)

    match classify_content(message.content):
        case TextContent(text=text):
            if FILE_PATH_MARKER in text:
                return _resolve_file_reference(message, text, prefix, log)
            log.debug(f"{prefix}Content is already a string.")
            return NormalizationResult(message=message)

        case PartsContent() as parts:
            log.debug(f"{prefix}Flattening {len(parts.parts)} content parts.")
            try:
                return _with_content(message, _flatten_parts(parts))
            except Exception as e:
                log.error(f"{prefix}Failed to convert content parts: {e}")
                return _with_content(message, PROCESSING_ERROR_PLACEHOLDER, str(e))

        case UnknownContent(value=value):
            log.warning(f"{prefix}Unexpected content type: {type(value).__name__}. Converting to string.")
            try:
                return _with_content(message, stringify(value))
            except Exception as e:
                log.error(f"{prefix}Failed to convert content: {e}")
                return _with_content(message, PROCESSING_ERROR_PLACEHOLDER, str(e))


def process_single_message_content(
    message: Message, index: int | None = None, log: logging.Logger | None = None
) -> Message:
    """Return a copy of ``message`` whose content is plain text."""
    return normalize_message(message, index, log).message


def process_messages(messages: Sequence[Message], log: logging.Logger | None = None) -> list[Message]:
    """Normalize every message in order; each one is handled independently."""
    (log or logger).debug(f"Processing {len(messages)} messages")
    return [process_single_message_content(message, index, log) for index, message in enumerate(messages)]


async def process_messages_async(
    messages: Sequence[Message], log: logging.Logger | None = None
) -> list[Message]:
    """Like ``process_messages`` but runs each normalization on a worker thread.

    File reads for different messages can overlap; the result keeps the
    input order.
    """
    (log or logger).debug(f"Processing {len(messages)} messages concurrently")
    return list(
        await asyncio.gather(
            *(
                asyncio.to_thread(process_single_message_content, message, index, log)
                for index, message in enumerate(messages)
            )
        )
    )
