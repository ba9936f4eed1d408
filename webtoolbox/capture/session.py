"""Browser session establishment and lifecycle.

A Session wraps one Playwright page plus a raw CDP session bound to it, and
owns every resource opened to get there. Resources are pushed onto an
AsyncExitStack as they are acquired and released in reverse order when the
session closes, or immediately when establishment fails part-way.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any, Awaitable, Callable, Optional, Tuple

import httpx
from playwright.async_api import async_playwright

from .errors import (
    BrowserLaunchError,
    DeadlineExceededError,
    RemoteConnectionError,
    RemoteEndpointFormatError,
    RemoteStatusError,
    SessionClosedError,
    ToolboxError,
)
from .models import InjectedScript, SessionState

DEFAULT_PROBE_TIMEOUT = 3.0


class RemoteEndpoint:
    """A validated host:port remote debugging endpoint."""

    def __init__(self, raw: str, host: str, port: str):
        self.raw = raw
        self.host = host
        self.port = port

    @property
    def address(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def probe_url(self) -> str:
        return f"{self.address}/json/version"

    def __repr__(self) -> str:
        return f"RemoteEndpoint(address={self.address})"


def parse_remote_endpoint(value: str) -> RemoteEndpoint:
    """Validate a remote debugging endpoint and normalize it to a URL.

    Accepts ``host:port`` with exactly one colon and both parts non-empty.
    Scheme-prefixed values like ``http://localhost:9222`` are rejected.

    Raises:
        RemoteEndpointFormatError: If the value is not host:port
    """
    parts = value.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise RemoteEndpointFormatError(value)

    return RemoteEndpoint(raw=value, host=parts[0], port=parts[1])


def _push_release(
    stack: AsyncExitStack,
    name: str,
    release: Callable[[], Awaitable[Any]],
    log: logging.Logger
) -> None:
    """Register a release callback that logs instead of raising."""

    async def _release() -> None:
        try:
            await release()
            log.debug(f"Released {name}")
        except Exception as e:
            log.warning(f"Error releasing {name}: {e}")

    stack.push_async_callback(_release)


class Session:
    """A live, cancelable handle to one browser page."""

    def __init__(
        self,
        page,
        cdp,
        target: str,
        timeout: float,
        delay: float = 0,
        script: Optional[InjectedScript] = None,
        exit_stack: Optional[AsyncExitStack] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize a session. The deadline starts counting immediately.

        Args:
            page: Playwright page the session drives
            cdp: Playwright CDPSession attached to the page
            target: Resolved address to load
            timeout: Session timeout in seconds
            delay: Blind rendering delay in seconds
            script: Optional script injected after the delay
            exit_stack: Release callbacks accumulated during establishment
            logger: Logger for lifecycle diagnostics
        """
        self.page = page
        self.cdp = cdp
        self.target = target
        self.timeout = timeout
        self.delay = delay
        self.script = script
        self.state = SessionState.UNNAVIGATED
        self.logger = logger or logging.getLogger(__name__)
        self._exit_stack = exit_stack or AsyncExitStack()
        self.deadline = asyncio.get_running_loop().time() + timeout

    @property
    def remaining(self) -> float:
        """Seconds left before the session deadline."""
        return self.deadline - asyncio.get_running_loop().time()

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    async def call(self, operation: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run one suspending operation bounded by the session deadline.

        Args:
            operation: Human readable name used in errors
            func: Coroutine function to call
            *args, **kwargs: Passed to func

        Raises:
            SessionClosedError: If the session was closed
            DeadlineExceededError: If the deadline elapsed before or during the call
        """
        if self.is_closed:
            raise SessionClosedError(operation)

        remaining = self.remaining
        if remaining <= 0:
            raise DeadlineExceededError(operation, self.timeout)

        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=remaining)
        except asyncio.TimeoutError:
            self.logger.error(f"Session deadline exceeded during {operation}")
            raise DeadlineExceededError(operation, self.timeout) from None

    def mark_ready(self) -> None:
        self.state = SessionState.READY

    async def close(self) -> None:
        """Release every resource in reverse acquisition order. Idempotent."""
        if self.is_closed:
            return
        self.state = SessionState.CLOSED
        self.logger.debug(f"Closing browser session for {self.target}")
        await self._exit_stack.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Session(target={self.target}, state={self.state.value}, timeout={self.timeout})"


class SessionEstablisher:
    """Creates sessions on a local headless Chromium or a remote Chrome."""

    def __init__(
        self,
        playwright_factory: Optional[Callable[[], Any]] = None,
        headless: bool = True,
        probe_transport: Optional[httpx.AsyncBaseTransport] = None,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the establisher.

        Args:
            playwright_factory: Callable returning an object with an async start(),
                async_playwright by default
            headless: Launch the local browser headless
            probe_transport: Transport for the remote liveness probe
            probe_timeout: Remote liveness probe timeout in seconds
            logger: Logger for diagnostics
        """
        self.playwright_factory = playwright_factory or async_playwright
        self.headless = headless
        self.probe_transport = probe_transport
        self.probe_timeout = probe_timeout
        self.logger = logger or logging.getLogger(__name__)

    async def establish(
        self,
        target: str,
        timeout: float,
        remote_endpoint: Optional[str] = None,
        script: Optional[str] = None,
        delay: float = 2,
    ) -> Session:
        """Open a browser session for an already resolved target.

        Args:
            target: Resolved file:// or http(s) address
            timeout: Session timeout in seconds
            remote_endpoint: Optional host:port of a running Chrome
            script: Optional script text to inject after navigation
            delay: Blind rendering delay in seconds

        Returns:
            A session in the UNNAVIGATED state

        Raises:
            RemoteEndpointFormatError: Bad remote endpoint format
            RemoteConnectionError: Remote endpoint unreachable or not 200
            BrowserLaunchError: Browser could not be launched or attached
        """
        self.logger.debug(
            f"Initializing Chrome browser: target={target} timeout={timeout} delay={delay} "
            f"remote={remote_endpoint or '-'} has_script={bool(script)}"
        )

        endpoint = None
        if remote_endpoint:
            endpoint = parse_remote_endpoint(remote_endpoint)
            await self.probe(endpoint)

        stack = AsyncExitStack()
        try:
            if endpoint is None:
                page, cdp = await self._open_local(stack)
            else:
                page, cdp = await self._attach_remote(stack, endpoint)

            page.set_default_timeout(timeout * 1000)
            session = Session(
                page=page,
                cdp=cdp,
                target=target,
                timeout=timeout,
                delay=delay,
                script=InjectedScript(source=script) if script else None,
                exit_stack=stack,
                logger=self.logger,
            )
        except BaseException as e:
            self.logger.debug("Establishment failed, releasing acquired resources")
            await stack.aclose()
            if isinstance(e, Exception) and not isinstance(e, ToolboxError):
                if endpoint is None:
                    raise BrowserLaunchError("failed to launch local browser", e) from e
                raise BrowserLaunchError(f"failed to attach to remote browser at {endpoint.address}", e) from e
            raise

        self.logger.debug("Chrome context created successfully")
        return session

    async def probe(self, endpoint: RemoteEndpoint) -> None:
        """Check that the remote debugging endpoint answers /json/version."""
        self.logger.debug(f"Testing connection to remote Chrome instance: {endpoint.probe_url}")
        try:
            async with httpx.AsyncClient(timeout=self.probe_timeout, transport=self.probe_transport) as client:
                response = await client.get(endpoint.probe_url)
        except httpx.HTTPError as e:
            raise RemoteConnectionError(endpoint.raw, endpoint.port, e) from e

        if response.status_code != 200:
            raise RemoteStatusError(endpoint.raw, response.status_code, endpoint.probe_url)

        self.logger.debug(f"Successfully connected to remote Chrome instance: {endpoint.address}")

    async def _open_local(self, stack: AsyncExitStack) -> Tuple[Any, Any]:
        self.logger.debug(f"Creating new Chrome instance (headless={self.headless})")

        playwright = await self.playwright_factory().start()
        _push_release(stack, "playwright", playwright.stop, self.logger)

        browser = await playwright.chromium.launch(headless=self.headless)
        _push_release(stack, "browser", browser.close, self.logger)

        context = await browser.new_context()
        _push_release(stack, "browser context", context.close, self.logger)

        page = await context.new_page()
        _push_release(stack, "page", page.close, self.logger)

        cdp = await self._open_cdp(stack, context, page)
        return page, cdp

    async def _attach_remote(self, stack: AsyncExitStack, endpoint: RemoteEndpoint) -> Tuple[Any, Any]:
        self.logger.debug(f"Connecting to existing browser at {endpoint.address}")

        playwright = await self.playwright_factory().start()
        _push_release(stack, "playwright", playwright.stop, self.logger)

        # closing a connect_over_cdp browser only disconnects
        browser = await playwright.chromium.connect_over_cdp(endpoint.address)
        _push_release(stack, "remote browser connection", browser.close, self.logger)

        if browser.contexts:
            context = browser.contexts[0]
        else:
            context = await browser.new_context()
            _push_release(stack, "browser context", context.close, self.logger)

        page = await context.new_page()
        _push_release(stack, "page", page.close, self.logger)

        cdp = await self._open_cdp(stack, context, page)
        self.logger.debug("Remote Chrome context created successfully")
        return page, cdp

    async def _open_cdp(self, stack: AsyncExitStack, context, page):
        cdp = await context.new_cdp_session(page)
        _push_release(stack, "CDP session", cdp.detach, self.logger)
        await cdp.send("Runtime.enable")
        return cdp
