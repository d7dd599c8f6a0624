"""
Shared test fixtures and configuration.
"""

import os
import tempfile
from typing import List, Optional

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("LOCAL_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "healthyaar_test_data"))
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.pop("GEMINI_API_KEY", None)

from healthyaar.config import Settings
from healthyaar.llm.base import GenerationResult, LLMProvider
from healthyaar.models import Identity


class FakeProvider(LLMProvider):
    """Records generate() calls and answers with a canned result."""

    def __init__(self, reply: str = "Stay hydrated.", error: Optional[Exception] = None):
        super().__init__(api_key="fake", model="fake-model")
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def generate(self, contents, system_instruction=None, temperature=None, max_tokens=None):
        self.calls.append({"contents": contents, "system_instruction": system_instruction})
        if self.error is not None:
            raise self.error
        return GenerationResult.ok(self.reply, model=self.model)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        app_id="test-app",
        secret_key="test-secret",
        custom_token_secret="test-custom-secret",
        local_storage_path=str(tmp_path / "data"),
        log_file_enabled=False,
        log_console_enabled=False,
        log_api_requests=False,
        chat_history_window=0,
    )


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def identity():
    return Identity(uid="user-123", is_anonymous=True)

