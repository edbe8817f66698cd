"""Shared test fixtures."""

from unittest.mock import patch

import pytest

from app.services import tokenizer


@pytest.fixture(autouse=True)
def offline_token_counter():
    """Keep tests offline: the shared counter uses the length-based fallback."""
    with patch.object(tokenizer.tiktoken, "encoding_for_model", side_effect=RuntimeError("offline")):
        tokenizer._token_counter = None
        yield
        tokenizer._token_counter = None
