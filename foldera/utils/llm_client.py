"""
Chat-Completion Clients

The conflict solver depends only on the narrow CompletionClient protocol:
one call that takes role-tagged messages and returns the model's text.
Retry, backoff and circuit breaking are the client's business, not the
solver's, so they live here.
"""
import asyncio
import inspect
import random
import time
from typing import Any, List, Literal, Protocol, Sequence, runtime_checkable
from loguru import logger
from pydantic import BaseModel
from pydantic_ai import Agent, RunContext
from foldera.config import get_settings
from foldera.utils.circuit_breaker import CircuitBreaker, get_llm_circuit
from foldera.utils.observability import log_llm_call


class LLMError(Exception):
    """Recoverable LLM errors that should trigger retries."""
    pass


class LLMCriticalError(Exception):
    """Non-recoverable errors (auth failure, invalid prompt, etc.)."""
    pass


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


@runtime_checkable
class CompletionClient(Protocol):
    """Anything that can turn a list of chat messages into completion text."""

    async def create_completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        ...


async def run_agent_with_retry(
    agent: Agent,
    prompt: str,
    deps: Any = None,
    max_retries: int | None = None,
    **run_kwargs
) -> Any:
    """
    Executes an agent with exponential backoff retry logic.

    Args:
        agent: The PydanticAI agent to run
        prompt: The prompt to send to the agent
        deps: Optional dependencies for the agent
        max_retries: Override default retry count from settings
        **run_kwargs: Passed through to agent.run (model, model_settings, ...)

    Returns:
        The agent's output (typed based on agent's output_type)

    Raises:
        LLMCriticalError: For non-recoverable failures
        LLMError: After max retries exhausted
    """
    settings = get_settings()
    max_attempts = max_retries or settings.max_retries
    min_wait = settings.retry_min_wait_seconds
    max_wait = settings.retry_max_wait_seconds

    last_error = None

    for attempt in range(1, max_attempts + 1):
        try:
            logger.debug(f"LLM attempt {attempt}/{max_attempts}")

            if deps is not None:
                result = await agent.run(prompt, deps=deps, **run_kwargs)
            else:
                result = await agent.run(prompt, **run_kwargs)

            return result.output

        except Exception as e:
            last_error = e
            error_type = classify_llm_error(e)

            if error_type == "auth":
                logger.error(f"🚨 Authentication failure: {e}")
                raise LLMCriticalError(f"Authentication failed: {e}") from e

            if error_type == "invalid_request":
                logger.error(f"🚨 Invalid request: {e}")
                raise LLMCriticalError(f"Invalid request: {e}") from e

            logger.warning(f"⚠️ {error_type} error (attempt {attempt}/{max_attempts}): {e}")

            if attempt == max_attempts:
                logger.error(f"❌ Max retries ({max_attempts}) exhausted. Last error: {e}")
                raise LLMError(f"Failed after {max_attempts} attempts: {e}") from e

            wait_time = min(min_wait * (2 ** (attempt - 1)), max_wait)
            # 20% jitter to prevent thundering herd
            wait_time = wait_time * (0.8 + 0.4 * random.random())

            logger.info(f"⏳ Retrying in {wait_time:.1f}s... (error: {error_type})")
            await asyncio.sleep(wait_time)

    raise LLMError(f"Unexpected retry loop exit. Last error: {last_error}")


def classify_llm_error(error: Exception) -> str:
    """Buckets a provider exception by its message: rate_limit, timeout, server_error, auth, invalid_request or unknown."""
    error_msg = str(error).lower()

    if "rate" in error_msg and "limit" in error_msg:
        return "rate_limit"
    if "timeout" in error_msg or "timed out" in error_msg:
        return "timeout"
    if any(code in error_msg for code in ["500", "502", "503", "504"]):
        return "server_error"
    if "authentication" in error_msg or "api key" in error_msg or "401" in error_msg:
        return "auth"
    if "invalid" in error_msg and "request" in error_msg:
        return "invalid_request"
    return "unknown"


def split_messages(messages: Sequence[ChatMessage]) -> tuple[str, str]:
    """Folds chat messages into (instructions, prompt) for agent-style APIs."""
    system = "\n\n".join(m.content for m in messages if m.role == "system")
    prompt = "\n\n".join(m.content for m in messages if m.role != "system")
    return system, prompt


class PydanticAICompletionClient:
    """
    Production completion client backed by a PydanticAI agent.

    The system message is supplied per run as the agent's instructions, so a
    single agent instance can serve concurrent detection calls.

    Usage:
        >>> client = PydanticAICompletionClient()
        >>> solver = ConflictSolver(client=client)
    """

    def __init__(
        self,
        max_retries: int | None = None,
        circuit: CircuitBreaker | None = None,
        use_circuit_breaker: bool = True,
    ):
        # No default model: the model is chosen per call so construction never needs credentials
        self.agent: Agent[str, str] = Agent(None, deps_type=str, output_type=str)
        self.max_retries = max_retries
        self.circuit = (circuit or get_llm_circuit()) if use_circuit_breaker else None

        @self.agent.instructions
        def _system_instructions(ctx: RunContext[str]) -> str:
            return ctx.deps

        logger.info(f"PydanticAICompletionClient initialized (circuit_breaker={use_circuit_breaker})")

    async def create_completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        system, prompt = split_messages(messages)
        start = time.perf_counter()

        async def execute() -> str:
            return await run_agent_with_retry(
                self.agent,
                prompt,
                deps=system,
                max_retries=self.max_retries,
                model=model,
                model_settings={"temperature": temperature, "max_tokens": max_tokens},
            )

        try:
            if self.circuit is not None:
                text = await self.circuit.call(execute)
            else:
                text = await execute()
        except Exception as e:
            log_llm_call(model=model, duration_ms=(time.perf_counter() - start) * 1000, success=False, error=str(e))
            raise

        log_llm_call(model=model, duration_ms=(time.perf_counter() - start) * 1000)
        return text


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class ChatCompletionsAdapter:
    """
    Adapts an OpenAI-shaped client (client.chat.completions.create) to CompletionClient.

    Works with the async OpenAI SDK client or any stand-in exposing the same
    shape. Provider prefixes such as "openai:" are stripped from the model name.
    """

    def __init__(self, client: Any, json_mode: bool = True):
        self.client = client
        self.json_mode = json_mode

    async def create_completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        request = {
            "model": model.split(":", 1)[-1],
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self.json_mode:
            request["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(**request)
        if inspect.isawaitable(response):
            response = await response

        choices: List[Any] = _field(response, "choices") or []
        if not choices:
            raise LLMError("Completion response contained no choices")

        content = _field(_field(choices[0], "message"), "content")
        if not isinstance(content, str):
            raise LLMError("Completion choice has no text content")
        return content
