"""Navigation pipeline: navigate, blind delay, inject script.

The delay is a fixed wait rather than a load-state wait; dynamic pages do
not signal readiness reliably, so the user tunes the delay instead.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import Error as PlaywrightError

from .errors import NavigationError, ScriptEvaluationError, SessionClosedError, SessionStateError
from .models import InjectedScript, SessionState


class NavigationPipeline:
    """Prepares a session for actions. Run once per session."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the pipeline.

        Args:
            logger: Logger for step diagnostics
            sleep: Coroutine used for the blind delay
        """
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    async def prepare(self, session) -> None:
        """Navigate to the target, wait the configured delay, run the script.

        Raises:
            SessionClosedError: If the session was closed
            SessionStateError: If the session was already prepared
            NavigationError: If the target failed to load
            ScriptEvaluationError: If the injected script threw or rejected
            DeadlineExceededError: If the session timed out during a step
        """
        if session.is_closed:
            raise SessionClosedError("navigate")
        if session.state is not SessionState.UNNAVIGATED:
            raise SessionStateError("navigate", session.state.value, SessionState.UNNAVIGATED.value)

        await self._navigate(session)
        await self._delay(session)
        await self._inject(session)

        session.mark_ready()
        self.logger.debug("Navigation and preparation completed successfully")

    async def _navigate(self, session) -> None:
        self.logger.debug(f"Navigating to target URL: {session.target}")
        try:
            await session.call("navigate", session.page.goto, session.target)
        except PlaywrightError as e:
            self.logger.error(f"Failed to navigate to {session.target}: {e}")
            raise NavigationError(session.target, e) from e

    async def _delay(self, session) -> None:
        self.logger.debug(f"Applying rendering delay: delay={session.delay}s url={session.target}")
        await session.call("delay", self._sleep, session.delay)

    async def _inject(self, session) -> None:
        script: Optional[InjectedScript] = session.script
        if script is None:
            await session.call("inject script", _noop)
            return

        self.logger.debug(
            f"Executing custom JavaScript: length={len(script.source)} has_await={script.is_async}"
        )
        params = {
            "expression": script.expression,
            "awaitPromise": script.is_async,
            "returnByValue": True,
        }
        try:
            result: Dict[str, Any] = await session.call(
                "inject script", session.cdp.send, "Runtime.evaluate", params
            )
        except PlaywrightError as e:
            self.logger.error(f"Failed to execute custom JavaScript: {e}")
            raise ScriptEvaluationError(str(e)) from e

        details = (result or {}).get("exceptionDetails")
        if details:
            exception = details.get("exception") or {}
            error_text = exception.get("description") or details.get("text", "unknown error")
            self.logger.error(f"JavaScript exception during execution: {error_text}")
            raise ScriptEvaluationError(error_text)

        self.logger.debug("Custom JavaScript executed successfully")


async def _noop() -> None:
    return None
