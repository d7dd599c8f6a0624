"""
Profile Model - the per-user health questionnaire document.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

FieldValue = Union[str, int, float]


class Profile(BaseModel):
    """
    Health profile with the questionnaire defaults.

    Serialized with camelCase keys (``fullName``, ``bloodGroup``, ...);
    unknown keys are rejected so the stored field set stays fixed.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    # Identity
    full_name: FieldValue = ""
    dob: FieldValue = ""
    gender: FieldValue = "Male"
    phone: FieldValue = ""
    location: FieldValue = ""

    # Health metrics
    height: FieldValue = ""  # cm
    weight: FieldValue = ""  # kg
    blood_group: FieldValue = ""
    allergies: FieldValue = ""
    chronic_diseases: FieldValue = ""
    past_medical_history: FieldValue = ""

    # Lifestyle
    smoking_status: FieldValue = "Never"
    alcohol_consumption: FieldValue = ""
    dietary_habits: FieldValue = ""
    exercise: FieldValue = ""
    sleep_hours: FieldValue = ""
    stress_level: FieldValue = "Low"

    def to_document(self) -> Dict[str, Any]:
        """Document form with camelCase keys."""
        return self.model_dump(by_alias=True)

    def merged_with(self, fields: Dict[str, Any]) -> "Profile":
        """Return a copy with ``fields`` (camelCase or snake_case keys) applied."""
        return Profile.model_validate({**self.to_document(), **ProfileUpdate.model_validate(fields).changes()})


class ProfileUpdate(BaseModel):
    """Partial profile used for merge saves - only submitted fields are written."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    full_name: Optional[FieldValue] = None
    dob: Optional[FieldValue] = None
    gender: Optional[FieldValue] = None
    phone: Optional[FieldValue] = None
    location: Optional[FieldValue] = None
    height: Optional[FieldValue] = None
    weight: Optional[FieldValue] = None
    blood_group: Optional[FieldValue] = None
    allergies: Optional[FieldValue] = None
    chronic_diseases: Optional[FieldValue] = None
    past_medical_history: Optional[FieldValue] = None
    smoking_status: Optional[FieldValue] = None
    alcohol_consumption: Optional[FieldValue] = None
    dietary_habits: Optional[FieldValue] = None
    exercise: Optional[FieldValue] = None
    sleep_hours: Optional[FieldValue] = None
    stress_level: Optional[FieldValue] = None

    def changes(self) -> Dict[str, Any]:
        """Submitted fields only, keyed by their document (camelCase) names."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class ProfileResponse(BaseModel):
    """Result of a profile load."""
    exists: bool
    profile: Dict[str, Any]


PROFILE_FIELDS = tuple(Profile.model_fields)
