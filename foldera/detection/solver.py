"""
LLM-Assisted Conflict Solver
Combines the deterministic scheduling pass with one model call for
semantic conflicts (contradictory figures, broken commitments, ...).

Flow:
    signals → deterministic pass → one completion → parse/validate → merge

The model can only add findings. Service failures and unusable output
degrade to the deterministic result; nothing but a contract violation
(no signal list at all) escapes to the caller.
"""
import time
from typing import List, Optional, Sequence
from loguru import logger
from foldera.config import get_settings
from foldera.detection.parsing import decode_payload, validate_items
from foldera.detection.prompts import PromptConfig, build_messages, get_prompt
from foldera.detection.scheduling import detect_scheduling_conflicts
from foldera.models.conflict import Conflict
from foldera.models.signal import WorkSignal
from foldera.utils.llm_client import CompletionClient
from foldera.utils.observability import log_detection_run


def merge_conflicts(primary: Sequence[Conflict], extra: Sequence[Conflict]) -> List[Conflict]:
    """
    Union of two conflict lists; every primary conflict survives untouched.

    An extra conflict is a duplicate when its natural key is already present,
    or when it names the same kind and signal set as a kept conflict but
    omits the moment.
    """
    merged = list(primary)
    seen_keys = {c.natural_key() for c in merged}
    seen_sets = {c.natural_key()[:2] for c in merged}

    for conflict in extra:
        key = conflict.natural_key()
        if key in seen_keys:
            continue
        if key[2] is None and key[:2] in seen_sets:
            continue
        merged.append(conflict)
        seen_keys.add(key)
        seen_sets.add(key[:2])

    return merged


class ConflictSolver:
    """
    Detects conflicts across a batch of work signals.

    The completion client is injected, so tests (and alternative providers)
    can swap it without touching the solver. The solver keeps no per-call
    state: one instance can serve concurrent detections.

    Usage:
        >>> solver = ConflictSolver(client=PydanticAICompletionClient())
        >>> conflicts = await solver.detect(signals)
    """

    detect_scheduling_conflicts = staticmethod(detect_scheduling_conflicts)

    def __init__(
        self,
        client: CompletionClient | None = None,
        prompt: PromptConfig | None = None,
        enable_llm: bool | None = None,
    ):
        """
        Args:
            client: Default completion client (a per-call client overrides it)
            prompt: Prompt configuration (resolved from settings if None)
            enable_llm: Override settings.enable_llm_conflict_detection
        """
        settings = get_settings()
        self.client = client
        self.prompt = prompt or get_prompt()
        self.enable_llm = settings.enable_llm_conflict_detection if enable_llm is None else enable_llm

        logger.info(
            f"ConflictSolver initialized (llm={'on' if self.enable_llm else 'off'}, "
            f"prompt={self.prompt.name}@{self.prompt.version})"
        )

    async def detect(
        self,
        signals: Sequence[WorkSignal],
        client: CompletionClient | None = None,
    ) -> List[Conflict]:
        """
        Detect scheduling and semantic conflicts in one batch.

        Args:
            signals: The detection batch (never mutated)
            client: Completion client for this call; defaults to the solver's

        Returns:
            Deterministic conflicts first, then any new model-found conflicts

        Raises:
            TypeError: If signals is None
        """
        if signals is None:
            raise TypeError("ConflictSolver.detect() requires a signal sequence, got None")

        signals = list(signals)
        if not signals:
            logger.debug("Empty signal batch, skipping detection")
            return []

        start = time.perf_counter()
        deterministic = detect_scheduling_conflicts(signals)

        active_client = client or self.client
        llm_conflicts: List[Conflict] = []

        if not self.enable_llm or active_client is None:
            llm_status = "skipped"
        else:
            llm_conflicts, llm_status = await self._run_llm_pass(signals, active_client)

        merged = merge_conflicts(deterministic, llm_conflicts)

        log_detection_run(
            signal_count=len(signals),
            deterministic_count=len(deterministic),
            llm_count=len(llm_conflicts),
            total_count=len(merged),
            duration_ms=(time.perf_counter() - start) * 1000,
            llm_status=llm_status,
            prompt_version=self.prompt.version,
        )
        return merged

    async def _run_llm_pass(
        self,
        signals: List[WorkSignal],
        client: CompletionClient,
    ) -> tuple[List[Conflict], str]:
        """Single completion request; returns (conflicts, status) and never raises."""
        messages = build_messages(signals, self.prompt)

        try:
            raw_text: Optional[str] = await client.create_completion(
                messages,
                model=self.prompt.model,
                temperature=self.prompt.temperature,
                max_tokens=self.prompt.max_tokens,
            )
        except Exception as e:
            logger.warning(f"LLM conflict detection unavailable, using deterministic result: {e}")
            return [], "failed"

        try:
            items = decode_payload(raw_text)
            if items is None:
                logger.warning("LLM returned no usable conflict list, using deterministic result")
                return [], "unusable"
            return validate_items(items, {s.id for s in signals}), "ok"
        except Exception as e:
            logger.warning(f"Could not interpret LLM output, using deterministic result: {type(e).__name__}")
            return [], "unusable"
