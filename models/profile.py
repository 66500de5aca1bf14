from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


ConnectionDegree = Literal[1, 2, 3]

# Producers send camelCase (publicIdentifier, isPartial, ...); snake_case is accepted too.
_WIRE_CONFIG = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


def _coerce_degree(value: Any) -> Any:
    """Accept 2, "2", "2nd" or "2nd degree connection"; blanks become None."""
    if value is None or isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text[0].isdigit():
        return int(text[0])
    return value


class Experience(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    company_linkedin_url: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None  # None = present
    duration: Optional[str] = None
    description: Optional[str] = None

    model_config = _WIRE_CONFIG


class Education(BaseModel):
    school: Optional[str] = None
    school_linkedin_url: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    description: Optional[str] = None

    model_config = _WIRE_CONFIG


class ProfileObservation(BaseModel):
    """Extraction-layer output: one full or partial sighting of a profile."""

    public_identifier: Optional[str] = None
    linkedin_url: Optional[str] = None

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    about: Optional[str] = None
    profile_picture_url: Optional[str] = None

    current_company: Optional[str] = None
    current_title: Optional[str] = None

    connection_degree: Optional[ConnectionDegree] = None
    connected_at: Optional[str] = None

    experience: Optional[list[Experience]] = None
    education: Optional[list[Education]] = None
    skills: Optional[list[str]] = None

    scraped_at: Optional[str] = None
    last_interaction: Optional[str] = None
    is_partial: bool = False

    model_config = _WIRE_CONFIG

    @field_validator("connection_degree", mode="before")
    @classmethod
    def parse_degree(cls, value: Any) -> Any:
        return _coerce_degree(value)


class Profile(BaseModel):
    """Reconciled, stored view of a profile."""

    id: str
    public_identifier: str
    linkedin_url: str

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    about: Optional[str] = None
    profile_picture_url: Optional[str] = None

    current_company: Optional[str] = None
    current_title: Optional[str] = None

    connection_degree: Optional[ConnectionDegree] = None
    connected_at: Optional[str] = None

    experience: Optional[list[Experience]] = None
    education: Optional[list[Education]] = None
    skills: Optional[list[str]] = None

    scraped_at: str
    last_interaction: Optional[str] = None
    is_partial: bool = True

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def completeness(self) -> str:
        return "partial" if self.is_partial else "full"
