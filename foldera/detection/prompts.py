"""
Versioned Prompts for Conflict Detection

Each prompt pins the exact per-conflict fields the parser expects, so a
prompt change that alters the output contract needs a new version.
"""
from dataclasses import dataclass
from typing import List, Sequence
from foldera.config import get_settings
from foldera.models.signal import WorkSignal
from foldera.utils.llm_client import ChatMessage
from foldera.utils.prompt_sanitizer import sanitize_for_prompt


OUTPUT_CONTRACT = """OUTPUT FORMAT:
Respond with a single JSON object and nothing else (no markdown, no commentary):
{
  "conflicts": [
    {
      "type": "scheduling_conflict|content_conflict|financial_mismatch|commitment_contradiction",
      "severity": "low|medium|high|critical",
      "signals_involved": ["signal_id_1", "signal_id_2"],
      "summary": "One-line description of the inconsistency",
      "recommended_action": "What the user should do",
      "datetime": "2024-01-15T09:00:00Z (only when the conflict has a moment)"
    }
  ]
}
Rules:
- Every conflict involves at least two signals.
- Only use signal IDs exactly as given in the input.
- Return {"conflicts": []} when nothing conflicts."""


SCHEDULING_CONFLICT_SYSTEM = f"""You are a scheduling conflict detector. Analyze calendar events and emails to detect scheduling conflicts.

CONFLICT TYPES:
- Double booking: Same time slot, different events
- Overlapping commitments: Events that overlap in time
- Contradictory commitments: Email says "available" but calendar shows "busy"

{OUTPUT_CONTRACT}"""


CONFLICT_DETECTION_SYSTEM = f"""You are a Chief of Staff analyzing a busy executive's communications.
Your job is to find inconsistencies between their emails, calendar and documents.

DETECTION RULES:
1. SCHEDULING: Same time slot, double bookings, moved meetings still on the calendar
2. CONTENT: Documents or emails stating contradictory facts
3. FINANCIAL: Figures that disagree across documents (amounts, totals, rates)
4. COMMITMENTS: Promises made in one place that another signal contradicts

{OUTPUT_CONTRACT}"""


@dataclass(frozen=True)
class PromptConfig:
    """A versioned system prompt plus the generation settings to run it with."""
    name: str
    version: str
    system: str
    model: str
    temperature: float
    max_tokens: int


_PROMPTS = {
    "scheduling-conflict": ("1.1", SCHEDULING_CONFLICT_SYSTEM),
    "conflict-detection": ("2.4", CONFLICT_DETECTION_SYSTEM),
}

DEFAULT_PROMPT = "conflict-detection"


def get_prompt(name: str | None = None) -> PromptConfig:
    """
    Resolve a prompt by name, falling back to the default prompt.

    Generation settings (model, temperature, max tokens) come from Settings
    so they can be tuned per environment without a prompt version bump.
    """
    settings = get_settings()
    name = name or settings.conflict_prompt
    if name not in _PROMPTS:
        name = DEFAULT_PROMPT
    version, system = _PROMPTS[name]

    return PromptConfig(
        name=name,
        version=version,
        system=system,
        model=settings.conflict_model,
        temperature=settings.conflict_temperature,
        max_tokens=settings.conflict_max_tokens,
    )


def format_signals(signals: Sequence[WorkSignal], max_field_length: int | None = None) -> str:
    """Renders the batch as numbered blocks with sanitized free text."""
    limit = max_field_length or get_settings().prompt_field_max_length
    blocks = []
    for idx, s in enumerate(signals, 1):
        author = sanitize_for_prompt(s.author, limit) if s.author else "N/A"
        content = sanitize_for_prompt(s.content, limit) if s.content else "N/A"
        blocks.append(
            f"Signal {idx}:\n"
            f"- ID: {s.id}\n"
            f"- Type: {s.type}\n"
            f"- Source: {s.source}\n"
            f"- Datetime: {s.datetime or 'N/A'}\n"
            f"- Author: {author}\n"
            f"- Content: {content}"
        )
    return "\n\n".join(blocks)


def build_messages(signals: Sequence[WorkSignal], prompt: PromptConfig) -> List[ChatMessage]:
    """One system message (the prompt) and one user message (the batch)."""
    return [
        ChatMessage(role="system", content=prompt.system),
        ChatMessage(
            role="user",
            content=f"Analyze these signals for conflicts:\n\n{format_signals(signals)}",
        ),
    ]
