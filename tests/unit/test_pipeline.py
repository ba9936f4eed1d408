"""Unit tests for the navigation pipeline."""

import pytest
from playwright.async_api import Error as PlaywrightError

from webtoolbox.capture.actions import ActionExecutor
from webtoolbox.capture.errors import (
    DeadlineExceededError,
    NavigationError,
    ScriptEvaluationError,
    SessionClosedError,
    SessionStateError,
)
from webtoolbox.capture.models import SessionState
from webtoolbox.capture.pipeline import NavigationPipeline
from webtoolbox.capture.session import SessionEstablisher


async def open_session(env, **kwargs):
    kwargs.setdefault("timeout", 12)
    kwargs.setdefault("delay", 2)
    establisher = SessionEstablisher(playwright_factory=env.factory)
    return await establisher.establish("https://example.com", **kwargs)


class TestPipelineOrdering:
    """Navigate, delay, inject and actions run strictly in order."""

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, fake_env, recording_sleep):
        session = await open_session(fake_env, script="window.scrollTo(0, 0)")
        fake_env.page.evaluate_result = ["Hello"]

        await NavigationPipeline(sleep=recording_sleep).prepare(session)
        await ActionExecutor(session).body_text()

        calls = fake_env.ledger.calls
        order = ["navigate", "delay:start", "delay:end", "cdp:Runtime.evaluate", "evaluate"]
        indexes = [calls.index(name) for name in order]
        assert indexes == sorted(indexes)
        await session.close()

    @pytest.mark.asyncio
    async def test_noop_inject_still_precedes_actions(self, fake_env, recording_sleep):
        session = await open_session(fake_env)

        await NavigationPipeline(sleep=recording_sleep).prepare(session)
        await ActionExecutor(session).screenshot()

        calls = fake_env.ledger.calls
        assert calls.index("navigate") < calls.index("delay:end") < calls.index("screenshot")
        assert "cdp:Runtime.evaluate" not in calls
        await session.close()

    @pytest.mark.asyncio
    async def test_delay_uses_configured_seconds(self, fake_env, recording_sleep):
        session = await open_session(fake_env, delay=7)

        await NavigationPipeline(sleep=recording_sleep).prepare(session)

        assert recording_sleep.delays == [7]
        assert fake_env.page.visited == ["https://example.com"]
        assert session.state is SessionState.READY
        await session.close()

    @pytest.mark.asyncio
    async def test_prepare_only_once(self, fake_env, recording_sleep):
        session = await open_session(fake_env)
        pipeline = NavigationPipeline(sleep=recording_sleep)
        await pipeline.prepare(session)

        with pytest.raises(SessionStateError):
            await pipeline.prepare(session)

        assert fake_env.page.visited == ["https://example.com"]
        await session.close()


class TestScriptInjection:
    """Tests for async detection and script evaluation."""

    @pytest.mark.asyncio
    async def test_async_script_is_wrapped_and_awaited(self, fake_env, recording_sleep):
        session = await open_session(fake_env, script="await new Promise(r => setTimeout(r, 10));")

        await NavigationPipeline(sleep=recording_sleep).prepare(session)

        method, params = fake_env.cdp.sent[-1]
        assert method == "Runtime.evaluate"
        assert params["expression"] == "(async () => { await new Promise(r => setTimeout(r, 10)); })();"
        assert params["awaitPromise"] is True
        await session.close()

    @pytest.mark.asyncio
    async def test_sync_script_is_evaluated_directly(self, fake_env, recording_sleep):
        session = await open_session(fake_env, script="document.title = 'x'")

        await NavigationPipeline(sleep=recording_sleep).prepare(session)

        method, params = fake_env.cdp.sent[-1]
        assert params["expression"] == "document.title = 'x'"
        assert params["awaitPromise"] is False
        await session.close()

    @pytest.mark.asyncio
    async def test_script_exception_is_preserved(self, fake_env, recording_sleep):
        fake_env.cdp.responses["Runtime.evaluate"] = {
            "result": {"type": "object", "subtype": "error"},
            "exceptionDetails": {
                "text": "Uncaught (in promise)",
                "exception": {"description": "Error: scroll target missing\n    at <anonymous>:1:7"},
            },
        }
        session = await open_session(fake_env, script="await scroll()")

        with pytest.raises(ScriptEvaluationError) as exc_info:
            await NavigationPipeline(sleep=recording_sleep).prepare(session)

        assert exc_info.value.script_error == "Error: scroll target missing\n    at <anonymous>:1:7"
        assert session.state is SessionState.UNNAVIGATED
        await session.close()

    @pytest.mark.asyncio
    async def test_script_exception_falls_back_to_text(self, fake_env, recording_sleep):
        fake_env.cdp.responses["Runtime.evaluate"] = {"exceptionDetails": {"text": "SyntaxError: Unexpected token"}}
        session = await open_session(fake_env, script="function (")

        with pytest.raises(ScriptEvaluationError) as exc_info:
            await NavigationPipeline(sleep=recording_sleep).prepare(session)

        assert "SyntaxError: Unexpected token" in exc_info.value.message
        await session.close()

    @pytest.mark.asyncio
    async def test_protocol_error_is_script_error(self, fake_env, recording_sleep):
        fake_env.cdp.responses["Runtime.evaluate"] = PlaywrightError("Target closed")
        session = await open_session(fake_env, script="1 + 1")

        with pytest.raises(ScriptEvaluationError) as exc_info:
            await NavigationPipeline(sleep=recording_sleep).prepare(session)

        assert "Target closed" in exc_info.value.message
        await session.close()


class TestPipelineFailures:
    """Failures are attributed to the step that failed."""

    @pytest.mark.asyncio
    async def test_navigation_failure(self, fake_env, recording_sleep):
        fake_env.page.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        session = await open_session(fake_env, script="await go()")

        with pytest.raises(NavigationError) as exc_info:
            await NavigationPipeline(sleep=recording_sleep).prepare(session)

        assert exc_info.value.target == "https://example.com"
        assert "ERR_NAME_NOT_RESOLVED" in exc_info.value.message
        assert recording_sleep.delays == []
        assert "cdp:Runtime.evaluate" not in fake_env.ledger.calls
        await session.close()

    @pytest.mark.asyncio
    async def test_deadline_during_delay(self, fake_env):
        session = await open_session(fake_env, timeout=0.05, delay=5)

        with pytest.raises(DeadlineExceededError) as exc_info:
            await NavigationPipeline().prepare(session)

        assert exc_info.value.operation == "delay"
        await session.close()

    @pytest.mark.asyncio
    async def test_prepare_after_close(self, fake_env, recording_sleep):
        session = await open_session(fake_env)
        await session.close()

        with pytest.raises(SessionClosedError) as exc_info:
            await NavigationPipeline(sleep=recording_sleep).prepare(session)

        assert exc_info.value.operation == "navigate"
        assert fake_env.page.visited == []
        assert recording_sleep.delays == []
