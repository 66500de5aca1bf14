from __future__ import annotations

from pipelines.runner import RunContext
from services.text_cleaning import clean_optional


_TEXT_FIELDS = {
    "profiles": ("first_name", "last_name", "full_name", "headline"),
    "posts": ("author_name", "author_headline"),
    "messages": (),
}


class CleanObservationText:
    """Collapse doubled names/headlines before anything is merged or stored."""

    def run(self, ctx: RunContext) -> RunContext:
        fields = _TEXT_FIELDS.get(ctx.kind, ())
        if not fields:
            return ctx
        cleaned = []
        for key, obs in ctx.parsed:
            updates = {name: clean_optional(getattr(obs, name)) for name in fields}
            cleaned.append((key, obs.model_copy(update=updates)))
        ctx.parsed = cleaned
        return ctx
