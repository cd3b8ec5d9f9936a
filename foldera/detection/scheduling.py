"""
Deterministic Scheduling-Conflict Detector
Rule-based pass that needs no reasoning service.

Two calendar events collide when their start instants are equal once
normalized to UTC. There is no fuzzy overlap window.
"""
from typing import Dict, Iterable, List
from loguru import logger
from foldera.models.conflict import Conflict, ConflictType, Severity
from foldera.models.signal import WorkSignal, format_instant


def detect_scheduling_conflicts(signals: Iterable[WorkSignal]) -> List[Conflict]:
    """
    Finds calendar events that share the exact same instant.

    Signals that are not calendar events, or whose datetime is missing or
    unparsable, are skipped. Every instant held by two or more events yields
    one high-severity conflict listing the event ids in input order.

    Args:
        signals: The detection batch (never mutated)

    Returns:
        Scheduling conflicts in order of first appearance of their instant

    Example:
        >>> conflicts = detect_scheduling_conflicts([standup, client_call])
        >>> conflicts[0].severity
        <Severity.HIGH: 'high'>
    """
    time_slots: Dict[str, List[WorkSignal]] = {}
    skipped = 0

    for signal in signals:
        if not signal.is_calendar_event:
            continue

        instant = signal.instant()
        if instant is None:
            skipped += 1
            continue

        # dicts keep insertion order, so groups come out in first-seen order
        time_slots.setdefault(format_instant(instant), []).append(signal)

    if skipped:
        logger.debug(f"Skipped {skipped} calendar events without a usable datetime")

    conflicts: List[Conflict] = []
    for instant_key, events in time_slots.items():
        if len(events) < 2:
            continue
        conflicts.append(_build_scheduling_conflict(instant_key, events))

    return conflicts


def _build_scheduling_conflict(instant_key: str, events: List[WorkSignal]) -> Conflict:
    sources = {str(e.source) for e in events}
    if len(sources) > 1:
        origin = f"across {', '.join(sorted(sources))}"
    else:
        origin = f"in {next(iter(sources))}"

    return Conflict(
        type=ConflictType.SCHEDULING,
        severity=Severity.HIGH,
        signals_involved=tuple(e.id for e in events),
        summary=f"{len(events)} calendar events scheduled at {instant_key} {origin}",
        recommended_action="Review the overlapping events and reschedule or decline all but one",
        datetime=instant_key,
    )
