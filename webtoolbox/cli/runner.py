"""CLI runner that sequences the capture layer and maps failures to exit codes.

The runner resolves the target, applies the timeout/delay policy, opens one
session, wires the event bridge when console capture is requested, runs the
navigation pipeline and then each requested action in a fixed order:
selector text, body text, screenshot, PDF.
"""

import logging
import sys
from enum import IntEnum
from typing import Awaitable, Callable, List, Optional, Tuple

import typer

from ..capture import (
    ActionError,
    ActionExecutor,
    ArtifactWriteError,
    BrowserLaunchError,
    ConfigurationError,
    DeadlineExceededError,
    EventBridge,
    NavigationError,
    NavigationPipeline,
    RemoteConnectionError,
    ScriptEvaluationError,
    SessionEstablisher,
    ToolboxError,
)
from .config import LOG_LEVELS, ToolboxConfiguration, adjust_timeout, resolve_target
from .output import ArtifactWriter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ExitCode(IntEnum):
    """Process exit codes."""
    SUCCESS = 0
    RUNTIME_ERROR = 1
    CONFIG_ERROR = 2
    CONNECTION_ERROR = 3
    NAVIGATION_ERROR = 4
    SCRIPT_ERROR = 5
    ACTION_ERROR = 6
    TIMEOUT_ERROR = 7


def exit_code_for(error: ToolboxError) -> ExitCode:
    """Map a toolbox error to the exit code reported by the CLI."""
    if isinstance(error, ConfigurationError):
        return ExitCode.CONFIG_ERROR
    if isinstance(error, (RemoteConnectionError, BrowserLaunchError)):
        return ExitCode.CONNECTION_ERROR
    if isinstance(error, NavigationError):
        return ExitCode.NAVIGATION_ERROR
    if isinstance(error, ScriptEvaluationError):
        return ExitCode.SCRIPT_ERROR
    if isinstance(error, (ActionError, ArtifactWriteError)):
        return ExitCode.ACTION_ERROR
    if isinstance(error, DeadlineExceededError):
        return ExitCode.TIMEOUT_ERROR
    return ExitCode.RUNTIME_ERROR


def setup_logging(level: str = "info") -> None:
    """Configure root logging to stderr. Unknown levels fall back to info."""
    logging.basicConfig(
        level=LOG_LEVELS.get(level.lower(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


class CLIRunner:
    """Runs one capture invocation from a validated configuration."""

    def __init__(
        self,
        config: ToolboxConfiguration,
        establisher: Optional[SessionEstablisher] = None,
        writer: Optional[ArtifactWriter] = None,
        pipeline: Optional[NavigationPipeline] = None,
    ):
        """Initialize runner.

        Args:
            config: Effective configuration, already validated
            establisher: Session establisher, built from config when omitted
            writer: Artifact writer, built from config when omitted
            pipeline: Navigation pipeline, default when omitted
        """
        self.config = config
        self.establisher = establisher or SessionEstablisher(headless=not config.browser.headful)
        self.writer = writer or ArtifactWriter(config.output.output_dir)
        self.pipeline = pipeline or NavigationPipeline()
        self.failures: List[ToolboxError] = []

    async def run(self) -> ExitCode:
        """Run the capture and return the exit code."""
        try:
            return await self._run()
        except ToolboxError as e:
            logger.debug(f"Capture failed: {e.error_code}", exc_info=True)
            self._print_error(e.message)
            return exit_code_for(e)
        except Exception as e:
            logger.debug("Unexpected failure", exc_info=True)
            self._print_error(f"Runtime error: {e}")
            return ExitCode.RUNTIME_ERROR

    async def _run(self) -> ExitCode:
        config = self.config
        target = resolve_target(config.target)
        timeout = adjust_timeout(config.browser.timeout, config.browser.delay)
        script = config.load_script()

        if config.browser.remote_debugging_port:
            logger.debug(f"Connecting to existing browser: target={target} remote={config.browser.remote_debugging_port}")
        else:
            logger.debug(f"Initializing new browser: target={target} timeout={timeout:g}s")

        session = await self.establisher.establish(
            target,
            timeout,
            remote_endpoint=config.browser.remote_debugging_port,
            script=script,
            delay=config.browser.delay,
        )

        async with session:
            if config.actions.console_log:
                logger.info("Starting console log capture")
                EventBridge().attach(session)

            await self.pipeline.prepare(session)
            exit_code = await self._run_actions(ActionExecutor(session))

        logger.debug("Command execution completed")
        return exit_code

    def _planned_actions(self, executor: ActionExecutor) -> List[Tuple[str, Callable[[], Awaitable[None]]]]:
        actions = self.config.actions
        planned = []

        if actions.selector:
            async def selector_text():
                typer.echo(await executor.text_by_selector(actions.selector))
            planned.append(("selector text", selector_text))

        if actions.body:
            async def body_text():
                typer.echo(await executor.body_text())
            planned.append(("body text", body_text))

        if actions.screenshot:
            async def screenshot():
                path = self.writer.write_screenshot(await executor.screenshot())
                typer.echo(f"Screenshot saved as {path}")
            planned.append(("screenshot", screenshot))

        if actions.pdf:
            async def pdf():
                path = self.writer.write_pdf(await executor.pdf())
                typer.echo(f"PDF saved as {path}")
            planned.append(("PDF", pdf))

        return planned

    async def _run_actions(self, executor: ActionExecutor) -> ExitCode:
        for name, action in self._planned_actions(executor):
            logger.info(f"Running action: {name}")
            try:
                await action()
            except (ActionError, ArtifactWriteError) as e:
                self.failures.append(e)
                self._print_error(e.message)
                if not self.config.actions.continue_on_error:
                    return ExitCode.ACTION_ERROR

        if self.failures:
            logger.warning(f"{len(self.failures)} action(s) failed")
            return ExitCode.ACTION_ERROR
        return ExitCode.SUCCESS

    def _print_error(self, message: str) -> None:
        typer.echo(f"❌ {message}", err=True)
