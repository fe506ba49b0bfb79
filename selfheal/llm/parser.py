from __future__ import annotations

import json

from pydantic import BaseModel, Field, ValidationError, field_validator

from selfheal.config.schema import LocatorKind
from selfheal.core.exceptions import SuggestionValidationError
from selfheal.utils.dom_extract import infer_kind


class Suggestion(BaseModel):
    query: str
    confidence: float = Field(ge=0.0, le=1.0)
    kind: LocatorKind | None = None

    @field_validator("query")
    @classmethod
    def validate_query(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("query must not be empty")
        if "\n" in stripped or "\r" in stripped:
            raise ValueError("query must be a single line")
        return stripped

    @property
    def resolved_kind(self) -> LocatorKind:
        return self.kind or infer_kind(self.query)


def parse_suggestion_response(response: str) -> Suggestion:
    content = response.strip()
    if not content:
        raise SuggestionValidationError("LLM returned an empty suggestion")
    if "```" in content:
        raise SuggestionValidationError("LLM returned markdown instead of a JSON object")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SuggestionValidationError("LLM returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise SuggestionValidationError("LLM returned JSON that is not an object")
    try:
        return Suggestion.model_validate(payload)
    except ValidationError as exc:
        raise SuggestionValidationError(f"LLM returned an unusable suggestion: {exc}") from exc
