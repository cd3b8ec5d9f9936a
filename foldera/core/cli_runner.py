"""
CLI Runner for the Conflict Solver
Runs detection over a JSON file of signals, or over a built-in demo batch.

Usage:
    python -m foldera.core.cli_runner                 # demo batch
    python -m foldera.core.cli_runner signals.json    # your own batch
    python -m foldera.core.cli_runner signals.json --no-llm
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import List
from loguru import logger
from foldera.api.main import build_solver
from foldera.detection.solver import ConflictSolver
from foldera.models.report import ConflictReport
from foldera.models.signal import WorkSignal
from foldera.utils.observability import configure_logging


def demo_signals() -> List[WorkSignal]:
    """
    Monday kickoff scenario: the kickoff is double-booked against a client
    call, a Slack message moves it to Tuesday, and the client still expects Monday.
    """
    return [
        WorkSignal(
            id="calendar:phoenix-kickoff",
            type="calendar_event",
            source="calendar",
            datetime="2024-01-15T09:00:00Z",
            content="Project Phoenix Kickoff - Conference Room A",
            author="Calendar System",
        ),
        WorkSignal(
            id="outlook:acme-sync",
            type="calendar_event",
            source="outlook",
            datetime="2024-01-15T09:00:00+00:00",
            content="Acme quarterly sync",
            author="pm@acme.com",
        ),
        WorkSignal(
            id="slack:msg_sarah_0114",
            type="email",
            source="slack",
            content="Designs aren't ready. We need to push the Phoenix kickoff to Tuesday.",
            author="Sarah Chen",
        ),
        WorkSignal(
            id="gmail:msg_client_0112",
            type="email",
            source="gmail",
            content="Excited for Monday's Project Phoenix kickoff. See you at 9 AM!",
            author="client@example.com",
        ),
    ]


def load_signals(path: Path) -> List[WorkSignal]:
    """Accepts either a JSON list of signals or an object with a 'signals' list."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("signals", [])
    return [WorkSignal.model_validate(item) for item in data]


def print_report(report: ConflictReport) -> None:
    print("\n" + "=" * 70)
    print(f"🔎 {report.total_conflicts} conflict(s) across {report.signals_analyzed} signals")
    print("=" * 70)

    for i, conflict in enumerate(report.conflicts, 1):
        print(f"\n{i}. [{conflict.severity.value.upper()}] {conflict.type}")
        print(f"   {conflict.summary}")
        print(f"   Signals: {', '.join(conflict.signals_involved)}")
        if conflict.datetime:
            print(f"   When: {conflict.datetime}")
        if conflict.recommended_action:
            print(f"   Action: {conflict.recommended_action}")
    print()


async def run(argv: List[str]) -> ConflictReport:
    configure_logging()

    use_llm = "--no-llm" not in argv
    paths = [a for a in argv if not a.startswith("--")]

    signals = load_signals(Path(paths[0])) if paths else demo_signals()
    logger.info(f"Loaded {len(signals)} signals ({'file' if paths else 'demo'})")

    solver = build_solver() if use_llm else ConflictSolver(enable_llm=False)
    conflicts = await solver.detect(signals)

    report = ConflictReport.build(len(signals), conflicts)
    print_report(report)
    return report


if __name__ == "__main__":
    asyncio.run(run(sys.argv[1:]))
