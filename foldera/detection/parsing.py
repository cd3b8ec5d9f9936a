"""
Model Output Parsing
Turns loosely-typed completion text into validated Conflict records.

Nothing in here raises: a response that cannot be decoded yields no
conflicts, and each malformed or hallucinated item is dropped on its own.
"""
import json
import re
from typing import Any, AbstractSet, List, Optional
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator
from foldera.models.conflict import Conflict, Severity
from foldera.models.signal import format_instant, parse_instant

# Keys the list of conflicts may arrive under, in priority order
RESULT_KEYS = ("conflicts", "findings")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class ConflictDescriptor(BaseModel):
    """One conflict exactly as the model described it, before id validation."""
    type: str = Field(..., min_length=1)
    severity: Severity = Severity.MEDIUM
    signals_involved: List[str] = Field(..., min_length=2)
    summary: str = Field(..., min_length=1)
    recommended_action: str = ""
    datetime: Optional[str] = None

    @field_validator("type", "summary", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value):
        return Severity.coerce(value)

    @field_validator("signals_involved", mode="after")
    @classmethod
    def _dedupe_ids(cls, value: List[str]) -> List[str]:
        # Keep first occurrence order; a repeated id is not a second signal
        unique = list(dict.fromkeys(value))
        if len(unique) < 2:
            raise ValueError("a conflict needs at least two distinct signals")
        return unique

    @field_validator("recommended_action", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("datetime", mode="before")
    @classmethod
    def _normalize_datetime(cls, value):
        # The moment is optional: an unusable one is dropped, the finding is kept
        if not isinstance(value, str):
            return None
        instant = parse_instant(value)
        return format_instant(instant) if instant else None

    def to_conflict(self) -> Conflict:
        return Conflict(
            type=self.type,
            severity=self.severity,
            signals_involved=tuple(self.signals_involved),
            summary=self.summary,
            recommended_action=self.recommended_action,
            datetime=self.datetime,
        )


def decode_payload(raw_text: str | None) -> Optional[List[Any]]:
    """
    Decodes the completion text and returns the raw list of conflict items.

    Returns None when the text is not a JSON object carrying a list under one
    of RESULT_KEYS. An object with none of those keys means "no conflicts".
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        return None

    text = raw_text.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)

    # JSONDecodeError is a ValueError; oversized integers raise a plain one
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as e:
        logger.warning(f"Model output is not valid JSON: {type(e).__name__}: {str(e)[:200]}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Model output root is {type(payload).__name__}, expected object")
        return None

    for key in RESULT_KEYS:
        if key in payload:
            items = payload[key]
            if not isinstance(items, list):
                logger.warning(f"Model output '{key}' is {type(items).__name__}, expected list")
                return None
            return items

    return []


def parse_conflicts(raw_text: str | None, known_ids: AbstractSet[str]) -> List[Conflict]:
    """
    Parse and validate model output against the ids of the input batch.

    Args:
        raw_text: The completion text
        known_ids: Ids present in the detection batch

    Returns:
        Well-formed conflicts whose every signal id exists in the batch
    """
    return validate_items(decode_payload(raw_text) or [], known_ids)


def validate_items(items: List[Any], known_ids: AbstractSet[str]) -> List[Conflict]:
    """Validates decoded items one by one, dropping malformed and hallucinated entries."""
    if not items:
        return []

    conflicts: List[Conflict] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.debug(f"Dropping conflict #{index}: not an object")
            continue

        # Older prompt versions used 'description' instead of 'summary'
        if "summary" not in item and "description" in item:
            item = {**item, "summary": item["description"]}

        try:
            descriptor = ConflictDescriptor.model_validate(item)
        except ValidationError as e:
            logger.debug(f"Dropping conflict #{index}: {e.error_count()} validation errors")
            continue

        unknown = [sid for sid in descriptor.signals_involved if sid not in known_ids]
        if unknown:
            logger.warning(f"Dropping hallucinated conflict #{index}: unknown signal ids {unknown}")
            continue

        conflicts.append(descriptor.to_conflict())

    dropped = len(items) - len(conflicts)
    if dropped:
        logger.info(f"Parsed {len(conflicts)} conflicts from model output, dropped {dropped}")

    return conflicts
