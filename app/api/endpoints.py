"""API endpoints for the chat preprocessing proxy."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from app import __version__
from app.clients.backend import BackendClient, get_backend_client
from app.models.conversation import HealthResponse, TokenCountResponse
from app.models.messages import ChatCompletionRequest, Message
from app.services.message_processor import process_messages_async
from app.services.tokenizer import get_token_count
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _prepare_messages(request: ChatCompletionRequest) -> list[Message]:
    messages = await process_messages_async(request.messages)
    token_count = get_token_count(messages)
    logger.info(f"Token count for model {request.model} - Input: {token_count.input}, Output: {token_count.output}")
    return messages


@router.post("/chat/completions", tags=["Chat"])
@router.post("/v1/chat/completions", tags=["Chat"])
async def create_chat_completion(
    request: ChatCompletionRequest,
    backend: BackendClient = Depends(get_backend_client),
) -> dict[str, Any]:
    """Normalize the messages, log their token count and forward them to the backend.

    Backend failures raise ``HTTPError`` and are turned into the error
    envelope by the registered exception handlers.
    """
    if request.stream:
        logger.warning("Streaming was requested but is not supported, forwarding as a single response")

    messages = await _prepare_messages(request)
    return await backend.create_chat_completion(request.to_backend_payload(messages))


@router.post("/v1/chat/completions/token-count", response_model=TokenCountResponse, tags=["Chat"])
async def count_chat_tokens(request: ChatCompletionRequest) -> TokenCountResponse:
    """Return the input/output token split for the request's messages."""
    messages = await process_messages_async(request.messages)
    return TokenCountResponse(**get_token_count(messages).as_dict())


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
