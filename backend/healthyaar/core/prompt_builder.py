"""
Prompt Builder - turns profile fields and chat transcripts into model input.

Every instruction built here ends with ``DISCLAIMER_INSTRUCTION`` so the
model never presents a diagnosis and always closes with a
consult-a-professional disclaimer.
"""

from typing import Any, Dict, List, Optional, Sequence

from ..llm.base import LLMMessage
from ..models import ChatMessage, Profile

DISCLAIMER_TEXT = (
    "Disclaimer: This is not medical advice. Please consult a healthcare "
    "professional for personal medical advice."
)

DISCLAIMER_INSTRUCTION = (
    "**IMPORTANT**: Do NOT provide a medical diagnosis or prescribe medication. "
    "Always include this disclaimer in bold at the end of your response: "
    f"\"**{DISCLAIMER_TEXT}**\""
)

NOT_PROVIDED = "Not provided"

# Display labels, in questionnaire order
PROFILE_LABELS = {
    "full_name": "Full Name",
    "dob": "Date of Birth",
    "gender": "Gender",
    "phone": "Phone Number",
    "location": "Location",
    "height": "Height (cm)",
    "weight": "Weight (kg)",
    "blood_group": "Blood Group",
    "allergies": "Allergies",
    "chronic_diseases": "Chronic Diseases",
    "past_medical_history": "Past Medical History",
    "smoking_status": "Smoking Status",
    "alcohol_consumption": "Alcohol Consumption",
    "dietary_habits": "Dietary Habits",
    "exercise": "Exercise Routine",
    "sleep_hours": "Average Sleep (hours)",
    "stress_level": "Stress Level",
}

# Contact details never go to the model
PRIVATE_FIELDS = {"phone"}

REPORT_PROMPT = (
    "You are a helpful medical assistant. Analyze the provided medical report image. "
    "Extract key metrics, their values, and their standard ranges. "
    "Provide a simple, easy-to-understand summary of the results. "
    "Format the output using simple HTML with '<ul>' and '<li>' for lists, "
    "and put the summary under '<h4>Summary</h4>'."
)


def _value(value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    return text or NOT_PROVIDED


def with_disclaimer(instruction: str) -> str:
    """Append the disclaimer instruction to ``instruction``."""
    return f"{instruction.rstrip()}\n\n{DISCLAIMER_INSTRUCTION}"


def profile_context(profile: Profile, fields: Optional[Sequence[str]] = None) -> str:
    """Render profile fields as a bullet list for prompt injection."""
    names = fields or [name for name in PROFILE_LABELS if name not in PRIVATE_FIELDS]
    return "\n".join(
        f"- {PROFILE_LABELS[name]}: {_value(getattr(profile, name))}" for name in names
    )


def chat_system_prompt(profile: Profile) -> str:
    """System instruction for the chat assistant."""
    context = profile_context(profile, ["chronic_diseases", "allergies", "dietary_habits"])
    return with_disclaimer(
        'You are a friendly and helpful AI health assistant called "Health Yaar AI". '
        "A user is asking a question.\n"
        "Here is some of their health data for context (use it to provide more relevant, "
        "general advice but do not diagnose):\n"
        f"{context}\n\n"
        "Please provide a helpful, safe, and general response."
    )


def chat_contents(history: Sequence[ChatMessage], window: int = 0) -> List[LLMMessage]:
    """
    Map a transcript to model turns, oldest first.

    Args:
        history: Transcript without the seed greeting
        window: Keep only the last ``window`` messages (0 keeps everything)

    Returns:
        Turns that always start with a user turn
    """
    messages = list(history)
    if window > 0 and len(messages) > window:
        messages = messages[-window:]

    # The conversation must open with a user turn
    while messages and messages[0].role != "user":
        messages.pop(0)

    return [
        LLMMessage.text("model" if m.role == "assistant" else "user", m.text)
        for m in messages
    ]


def summary_prompt(profile: Profile) -> str:
    """Instruction for the personalized health summary."""
    return with_disclaimer(
        "Analyze this health data and provide a personalized health summary.\n"
        f"{profile_context(profile)}\n\n"
        "Cover BMI (from height and weight), a review of lifestyle habits, reminders "
        "related to any chronic conditions or allergies, and 3 actionable tips. "
        "Start with '<h3>Your Personalized Health Summary:</h3>' and use simple HTML "
        "('<ul>' and '<li>') for lists."
    )


def report_prompt() -> str:
    """Instruction for the medical report image analysis."""
    return with_disclaimer(REPORT_PROMPT)


def report_contents(image_base64: str, mime_type: str) -> List[LLMMessage]:
    """Single user turn carrying the report instruction and the inline image."""
    return [
        LLMMessage.multimodal(
            "user",
            report_prompt(),
            image_base64_list=[{"data": image_base64, "media_type": mime_type}],
        )
    ]


def profile_from_form(form: Optional[Dict[str, Any]]) -> Profile:
    """Build a profile from submitted form data over the defaults."""
    return Profile().merged_with(form or {})
