"""
AI proxy endpoints - chat, health summary and report image analysis.

The provider credential stays on the server; callers only see the
generated text in a generateContent-shaped body.
"""

import base64
import binascii
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from ..core import prompt_builder
from ..errors import IdentityUnavailable, InvalidUpload, NetworkFailure, StoreUnavailable, UpstreamNon2xx
from ..llm.base import LLMMessage, LLMProvider
from ..models import ChatRequest, GenerationPayload, Identity, Profile, ReportAnalysisRequest, SummaryRequest
from ..storage import ProfileStore
from ..utils.auth import get_current_identity
from .profile import unusable_identity_error, get_profile_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])


def get_llm_provider(request: Request) -> LLMProvider:
    """
    Dependency returning the configured provider.

    Raises:
        HTTPException: 503 if no API key is configured
    """
    provider = request.app.state.llm_provider
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service is not configured. Set GEMINI_API_KEY to enable it.",
        )
    return provider


async def _generate(
    provider: LLMProvider,
    feature: str,
    contents: List[LLMMessage],
    system_instruction: Optional[str] = None,
) -> GenerationPayload:
    """Run one generation and translate failures into HTTP errors."""
    try:
        result = await provider.generate(contents, system_instruction=system_instruction)
    except (NetworkFailure, UpstreamNon2xx) as e:
        logger.error(f"{feature} generation failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    if not result.is_ok:
        logger.error(f"{feature} generation returned an unusable response: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Unparseable response from AI service: {result.error}",
        )
    return GenerationPayload.from_text(result.text)


def _validate_form(form) -> Profile:
    try:
        return prompt_builder.profile_from_form(form)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )


@router.post("/chat", response_model=GenerationPayload)
async def chat(
    body: ChatRequest,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    store: ProfileStore = Depends(get_profile_store),
    provider: LLMProvider = Depends(get_llm_provider)
):
    """
    Answer the latest user message given the prior transcript.

    The profile in the body (unsaved form state) wins over the stored one.
    """
    if body.messages[-1].role != "user":
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="The last message must come from the user",
        )

    if body.profile is not None:
        profile = _validate_form(body.profile)
    else:
        try:
            profile = await store.load(identity) or Profile()
        except IdentityUnavailable as e:
            raise unusable_identity_error(e)
        except StoreUnavailable:
            logger.warning(f"Profile unavailable for chat context, using defaults: uid={identity.uid}")
            profile = Profile()

    window = request.app.state.settings.chat_history_window
    contents = prompt_builder.chat_contents(body.messages, window=window)
    return await _generate(
        provider, "chat", contents,
        system_instruction=prompt_builder.chat_system_prompt(profile),
    )


@router.post("/generateHealthSummary", response_model=GenerationPayload)
async def generate_health_summary(
    body: SummaryRequest,
    identity: Identity = Depends(get_current_identity),
    provider: LLMProvider = Depends(get_llm_provider)
):
    """Generate a personalized health summary from the submitted form."""
    profile = _validate_form(body.form_data)
    prompt = prompt_builder.summary_prompt(profile)
    return await _generate(provider, "summary", [LLMMessage.text("user", prompt)])


def decode_report_image(body: ReportAnalysisRequest) -> bytes:
    """
    Check the declared MIME type and the base64 payload of a report upload.

    Raises:
        InvalidUpload: If the file is not an image or the payload is not base64
    """
    if not body.mime_type.startswith("image/"):
        raise InvalidUpload(f"Unsupported file type: {body.mime_type}")
    try:
        return base64.b64decode(body.image, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidUpload("Image payload is not valid base64") from e


@router.post("/analyzeReportImage", response_model=GenerationPayload)
async def analyze_report_image(
    body: ReportAnalysisRequest,
    identity: Identity = Depends(get_current_identity),
    provider: LLMProvider = Depends(get_llm_provider)
):
    """Analyze a medical report image."""
    try:
        decode_report_image(body)
    except InvalidUpload as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    contents = prompt_builder.report_contents(body.image, body.mime_type)
    return await _generate(provider, "report", contents)
