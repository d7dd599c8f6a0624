"""LLM module - provider interface and the Gemini implementation."""

from .base import LLMProvider, LLMMessage, GenerationResult, extract_text
from .gemini_provider import GeminiProvider
from .factory import create_llm_provider

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'GenerationResult',
    'extract_text',
    'GeminiProvider',
    'create_llm_provider',
]
