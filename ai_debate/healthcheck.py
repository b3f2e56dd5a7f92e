"""Provider health checks — ping each debater's API before starting a debate."""

import asyncio
import logging

from ai_debate.engine import StreamingResponseEngine
from ai_debate.models import ChatTurn, ModelDescriptor
from ai_debate.providers.base import redact
from config.config_loader import Credentials

logger = logging.getLogger(__name__)

_PING_SYSTEM_PROMPT = "You are a connectivity check."
_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _drain(engine: StreamingResponseEngine, model: ModelDescriptor, credential: str) -> str:
    text = ""
    async for fragment in engine.generate(
        model, _PING_SYSTEM_PROMPT, [ChatTurn("user", _PING_PROMPT)], credential
    ):
        text += fragment
    return text


async def _check_one(
    key: str,
    model: ModelDescriptor,
    engine: StreamingResponseEngine,
    credentials: Credentials,
) -> tuple[str, bool, str]:
    """Ping a single model. Returns (key, ok, error_message)."""
    credential = credentials.for_model(model)
    if not credential:
        return key, False, f"API key not configured for {model.vendor}"
    try:
        await asyncio.wait_for(_drain(engine, model, credential), timeout=_TIMEOUT_SEC)
        return key, True, ""
    except TimeoutError:
        return key, False, f"No reply within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", key, redact(str(exc)))
        return key, False, redact(str(exc))


async def run_health_checks(
    engine: StreamingResponseEngine,
    models: dict[str, ModelDescriptor],
    credentials: Credentials,
) -> dict[str, tuple[bool, str]]:
    """Ping all models in parallel.

    Returns:
        Dict mapping catalog key -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(
        *(_check_one(k, m, engine, credentials) for k, m in models.items())
    )
    return {key: (ok, err) for key, ok, err in results}
