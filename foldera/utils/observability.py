"""
Structured Logging & Observability
Logging that's both human-readable and machine-parseable.
"""
import sys
from loguru import logger
from foldera.config import get_settings


def configure_logging():
    """
    Configure loguru for the detection service.

    In development: Human-readable colorized output
    In production: Structured JSON logs for ingestion (ELK, Datadog, etc.)
    """
    settings = get_settings()

    logger.remove()

    if not settings.enable_structured_logging:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            level=settings.log_level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=settings.log_level,
            serialize=True,
        )

    logger.info(f"Logging configured: level={settings.log_level}, structured={settings.enable_structured_logging}")


def log_detection_run(
    signal_count: int,
    deterministic_count: int,
    llm_count: int,
    total_count: int,
    duration_ms: float,
    llm_status: str,
    **context
):
    """
    Structured logging for one conflict detection call.

    Args:
        signal_count: Number of signals in the batch
        deterministic_count: Conflicts found by the rule-based pass
        llm_count: Well-formed conflicts parsed from the model
        total_count: Conflicts returned after merge
        duration_ms: Wall time of the detection call
        llm_status: "ok", "skipped", "failed" or "unusable"
        **context: Additional context (prompt_version, model, ...)

    Example:
        >>> log_detection_run(
        ...     signal_count=12,
        ...     deterministic_count=1,
        ...     llm_count=3,
        ...     total_count=3,
        ...     duration_ms=842.1,
        ...     llm_status="ok",
        ...     prompt_version="1.0"
        ... )
    """
    log_data = {
        "event_type": "conflict_detection",
        "signal_count": signal_count,
        "deterministic_conflicts": deterministic_count,
        "llm_conflicts": llm_count,
        "total_conflicts": total_count,
        "duration_ms": round(duration_ms, 2),
        "llm_status": llm_status,
    }
    log_data.update(context)

    logger.bind(**log_data).info(
        f"ConflictSolver | {total_count} conflicts from {signal_count} signals (llm={llm_status})"
    )


def log_llm_call(
    model: str,
    duration_ms: float,
    attempts: int = 1,
    success: bool = True,
    error: str | None = None
):
    """
    Structured logging for LLM completion calls.

    Args:
        model: Model used (e.g., "openai:gpt-4o")
        duration_ms: API latency in milliseconds, retries included
        attempts: How many attempts the call took
        success: Whether the call succeeded
        error: Error message if failed
    """
    log_data = {
        "event_type": "llm_call",
        "model": model,
        "duration_ms": round(duration_ms, 2),
        "attempts": attempts,
        "success": success
    }

    if error:
        log_data["error"] = error

    level = "INFO" if success else "ERROR"
    logger.bind(**log_data).log(level, f"LLM Call: {model} | {duration_ms:.0f}ms | attempts={attempts}")
