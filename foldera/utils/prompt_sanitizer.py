"""
Prompt Sanitization Layer
Scrubs untrusted signal text before it is embedded into an LLM prompt.

Email bodies, calendar titles and document excerpts come from third parties,
so anything that reads like an instruction to the model is neutralised.
"""
import re
from typing import List, Pattern

FILTERED = "[FILTERED]"
BASE64_REMOVED = "[BASE64_REMOVED]"
TRUNCATED_SUFFIX = "... [truncated]"

# Prompt injection patterns
INSTRUCTION_PATTERNS = [
    r"ignore\s+(all\s+)?(previous\s+|above\s+)?(instructions?|prompts?)",
    r"disregard\s+(all\s+)?(previous\s+|above\s+)?(instructions?|prompts?)",
    r"forget\s+(all\s+)?(previous\s+|above\s+)?(instructions?|prompts?)",
    r"new\s+instructions?:",
    r"system\s+prompt:",
    r"you\s+are\s+now",
    r"act\s+as\s+if",
    r"pretend\s+(that\s+)?(you\s+are|to\s+be)",
    r"override\s+instructions?",
]

# Chat-template delimiter injection attempts
DELIMITER_PATTERNS = [
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
    r"<\s*/?\s*system\s*>",
    r"###\s*Instruction",
    r"###\s*Response",
]

BASE64_PATTERN = r"[A-Za-z0-9+/]{50,}={0,2}"


def _compile(patterns: List[str]) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


_INSTRUCTION_RE = _compile(INSTRUCTION_PATTERNS)
_DELIMITER_RE = _compile(DELIMITER_PATTERNS)
_BASE64_RE = re.compile(BASE64_PATTERN)
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_for_prompt(text: str | None, max_length: int = 10000) -> str:
    """
    Makes untrusted text safe to embed in a prompt.

    Steps, in order:
    1. Truncate to max_length (marking the cut)
    2. Replace instruction-like and delimiter patterns with [FILTERED]
    3. Replace long base64-looking runs with [BASE64_REMOVED]
    4. Collapse whitespace onto a single line

    Args:
        text: Raw signal text (None is treated as empty)
        max_length: Characters kept before truncation

    Returns:
        The sanitized single-line string
    """
    if not text:
        return ""

    sanitized = text
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + TRUNCATED_SUFFIX

    for pattern in _INSTRUCTION_RE + _DELIMITER_RE:
        sanitized = pattern.sub(FILTERED, sanitized)

    sanitized = _BASE64_RE.sub(BASE64_REMOVED, sanitized)

    return _WHITESPACE_RE.sub(" ", sanitized).strip()
