from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, Optional

from models.profile import Profile, ProfileObservation
from services.domain_utils import normalize_public_identifier, profile_url_for
from services.errors import MergeConflictError, MissingKeyError
from utils.time_utils import utc_now_iso


# Coalesced on every merge: incoming wins when it carries a value.
SCALAR_FIELDS: tuple[str, ...] = (
    "linkedin_url",
    "first_name",
    "last_name",
    "full_name",
    "headline",
    "location",
    "profile_picture_url",
    "current_company",
    "current_title",
    "connection_degree",
    "connected_at",
    "last_interaction",
)

# Last full observation wins; a partial one only fills what is absent.
DETAIL_FIELDS: tuple[str, ...] = (
    "experience",
    "education",
    "skills",
    "about",
)


def new_profile_id() -> str:
    return f"profile_{uuid.uuid4().hex}"


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def merge_profile(
    existing: Optional[Profile],
    incoming: ProfileObservation,
    *,
    now: Optional[str] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> Profile:
    """Reconcile a stored profile with a new observation of the same person.

    Pure: neither argument is mutated and nothing is read from or written to
    the store. Rules:

    - scalar fields: incoming value if present (non-null, non-blank), else the
      stored one, for partial and full observations alike
    - detail fields (experience, education, skills, about): a full
      observation replaces them outright, even with an empty list; a partial
      one only fills fields the stored profile has never seen
    - is_partial only ever goes from True to False
    - scraped_at always takes the observation's timestamp

    Raises MissingKeyError when the observation carries no public identifier
    and MergeConflictError when it belongs to a different profile.
    """
    key = normalize_public_identifier(incoming.public_identifier)
    if not key:
        raise MissingKeyError("Missing publicIdentifier")

    timestamp = now or utc_now_iso()
    observed_at = incoming.scraped_at if _has_value(incoming.scraped_at) else timestamp

    if existing is None:
        fields: Dict[str, Any] = {}
        for name in SCALAR_FIELDS:
            value = getattr(incoming, name)
            fields[name] = value if _has_value(value) else None
        for name in DETAIL_FIELDS:
            fields[name] = getattr(incoming, name)
        fields["linkedin_url"] = fields["linkedin_url"] or profile_url_for(key)
        return Profile(
            id=(id_factory or new_profile_id)(),
            public_identifier=key,
            scraped_at=observed_at,
            is_partial=incoming.is_partial,
            created_at=timestamp,
            updated_at=timestamp,
            **fields,
        )

    if existing.public_identifier != key:
        raise MergeConflictError(
            f"Observation for {key!r} cannot merge into profile {existing.public_identifier!r}",
            key=key,
        )

    merged: Dict[str, Any] = existing.model_dump()
    for name in SCALAR_FIELDS:
        value = getattr(incoming, name)
        if _has_value(value):
            merged[name] = value

    for name in DETAIL_FIELDS:
        value = getattr(incoming, name)
        if not incoming.is_partial:
            merged[name] = value
        elif merged.get(name) is None:
            merged[name] = value

    merged["is_partial"] = existing.is_partial and incoming.is_partial
    merged["scraped_at"] = observed_at
    merged["updated_at"] = timestamp
    # Surrogate key and first-seen time are immutable
    merged["id"] = existing.id
    merged["created_at"] = existing.created_at
    return Profile.model_validate(merged)
