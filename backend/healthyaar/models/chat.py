"""
Chat and AI proxy request/response models.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One transcript entry."""
    role: Literal["user", "assistant"]
    text: str


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``: prior transcript without the seed greeting."""
    messages: List[ChatMessage] = Field(..., min_length=1)
    profile: Optional[Dict[str, Any]] = None


class SummaryRequest(BaseModel):
    """Body of ``POST /api/generateHealthSummary``."""
    model_config = ConfigDict(populate_by_name=True)

    form_data: Dict[str, Any] = Field(..., alias="formData")


class ReportAnalysisRequest(BaseModel):
    """Body of ``POST /api/analyzeReportImage``: base64 image and its MIME type."""
    model_config = ConfigDict(populate_by_name=True)

    image: str = Field(..., min_length=1)
    mime_type: str = Field(..., alias="mimeType")


class GenerationPayload(BaseModel):
    """
    Response of the AI proxy endpoints.

    Mirrors the generateContent response shape so callers read
    ``candidates[0].content.parts[0].text`` either way.
    """
    candidates: List[Dict[str, Any]]
    text: str

    @classmethod
    def from_text(cls, text: str) -> "GenerationPayload":
        return cls(
            candidates=[{"content": {"role": "model", "parts": [{"text": text}]}}],
            text=text,
        )
