from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from models.content import MessageObservation, PostObservation
from models.profile import ProfileObservation
from pipelines.runner import RunContext
from services.domain_utils import normalize_public_identifier, public_identifier_from_url
from services.errors import InvalidRecordError, MissingKeyError, SyncError


_MODELS: Dict[str, Type[BaseModel]] = {
    "profiles": ProfileObservation,
    "posts": PostObservation,
    "messages": MessageObservation,
}

UNKNOWN_KEY = "unknown"


def _raw_key(kind: str, raw: Dict[str, Any]) -> Optional[str]:
    if kind == "profiles":
        key = normalize_public_identifier(raw.get("publicIdentifier") or raw.get("public_identifier"))
        if not key:
            key = public_identifier_from_url(raw.get("linkedinUrl") or raw.get("linkedin_url"))
        return key
    value = raw.get("id")
    if value is None:
        return None
    return str(value).strip() or None


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg', 'invalid value')}" if loc else str(first.get("msg", exc))


class ParseObservations:
    """Turn raw producer payloads into (key, observation) pairs.

    Items without a natural key are reported as MissingKey under the key
    "unknown"; payloads that fail validation are reported as InvalidRecord.
    Neither stops the batch.
    """

    def run(self, ctx: RunContext) -> RunContext:
        model = _MODELS[ctx.kind]
        parsed = []
        for raw in ctx.items or []:
            try:
                parsed.append(self._parse_one(ctx.kind, model, raw))
            except SyncError as exc:
                ctx.result.record_failure(exc.key or UNKNOWN_KEY, exc.kind, str(exc))
        ctx.parsed = parsed
        return ctx

    @staticmethod
    def _parse_one(kind: str, model: Type[BaseModel], raw: Any) -> Tuple[str, BaseModel]:
        if isinstance(raw, BaseModel):
            raw = raw.model_dump(by_alias=True)
        if not isinstance(raw, dict):
            raise InvalidRecordError(f"Expected an object, got {type(raw).__name__}")
        key = _raw_key(kind, raw)
        if not key:
            label = "publicIdentifier" if kind == "profiles" else "id"
            raise MissingKeyError(f"Missing {label}")
        try:
            obs = model.model_validate(raw)
        except ValidationError as exc:
            raise InvalidRecordError(_validation_message(exc), key=key) from exc
        if kind == "profiles":
            obs = obs.model_copy(update={"public_identifier": key})
        return key, obs
