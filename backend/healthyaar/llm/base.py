"""
LLM Provider Base - Abstract base for generative-language providers.
Supports multimodal turns (text + inline images).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LLMMessage:
    """
    One conversation turn in generateContent form.
    ``role`` is "user" or "model"; ``parts`` holds text and inlineData blocks.
    """
    role: str
    parts: List[Dict[str, Any]]

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only turn."""
        return LLMMessage(role=role, parts=[{"text": text}])

    @staticmethod
    def multimodal(role: str, text: str,
                   image_base64_list: Optional[List[Dict[str, str]]] = None) -> "LLMMessage":
        """
        Create a turn with text followed by inline images.

        Args:
            role: Turn role
            text: Text content
            image_base64_list: List of dicts with 'data' (base64 string) and 'media_type'
        """
        parts: List[Dict[str, Any]] = [{"text": text}]
        for img in image_base64_list or []:
            parts.append({
                "inlineData": {"mimeType": img["media_type"], "data": img["data"]}
            })
        return LLMMessage(role=role, parts=parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": self.parts}


@dataclass
class GenerationResult:
    """
    Validated outcome of a generation call.
    Exactly one of ``text`` (Ok) or ``error`` (Malformed) is set.
    """
    text: Optional[str] = None
    error: Optional[str] = None
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def ok(cls, text: str, model: str = "", usage: Optional[Dict[str, int]] = None) -> "GenerationResult":
        return cls(text=text, model=model, usage=usage or {})

    @classmethod
    def malformed(cls, reason: str) -> "GenerationResult":
        return cls(error=reason)

    @property
    def is_ok(self) -> bool:
        return self.text is not None


def extract_text(data: Any) -> GenerationResult:
    """
    Validate a generateContent-shaped body and pull out
    ``candidates[0].content.parts[0].text``.
    """
    if not isinstance(data, dict):
        return GenerationResult.malformed("response is not a JSON object")

    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        return GenerationResult.malformed(
            f"no candidates (blocked: {reason})" if reason else "no candidates"
        )

    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return GenerationResult.malformed("candidate has no content parts")

    text = parts[0].get("text")
    if not isinstance(text, str):
        return GenerationResult.malformed("first part has no text")

    usage = data.get("usageMetadata") or {}
    return GenerationResult.ok(text, model=data.get("modelVersion", ""), usage=usage)


class LLMProvider(ABC):
    """
    Abstract base class for generative-language providers.
    """

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 2048):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def generate(
        self,
        contents: List[LLMMessage],
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> GenerationResult:
        """
        Generate a reply for a conversation.

        Args:
            contents: Conversation turns, oldest first
            system_instruction: Optional system instruction text
            temperature: Sampling temperature override
            max_tokens: Max output tokens override

        Returns:
            GenerationResult; malformed when the body could not be parsed

        Raises:
            NetworkFailure: If the endpoint cannot be reached
            UpstreamNon2xx: If the endpoint answers with a non-2xx status
        """
        pass

    def _format_contents(self, contents: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [m.to_dict() for m in contents]
