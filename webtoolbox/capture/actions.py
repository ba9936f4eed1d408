"""Capture and extraction actions against a prepared session."""

import base64
import logging
from typing import List, Optional

from .errors import ActionError, SessionStateError, ToolboxError
from .models import SessionState

SCREENSHOT_QUALITY = 90

TEXT_BY_SELECTOR_JS = """
(selector) => Array.from(document.querySelectorAll(selector))
    .map(el => el.innerText.trim())
    .filter(text => text.length > 0)
"""


class ActionExecutor:
    """Screenshot, PDF and text extraction for one prepared session.

    Actions are independent and may run any number of times in any order,
    one at a time.
    """

    def __init__(self, session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    def _require_ready(self, action: str) -> None:
        # closed sessions fail in session.call with SessionClosedError
        if self.session.state is SessionState.UNNAVIGATED:
            raise SessionStateError(action, self.session.state.value, SessionState.READY.value)

    async def screenshot(self) -> bytes:
        """Capture a full-page JPEG screenshot."""
        self._require_ready("take screenshot")
        self.logger.debug("Taking screenshot")
        try:
            image = await self.session.call(
                "take screenshot",
                self.session.page.screenshot,
                full_page=True,
                type="jpeg",
                quality=SCREENSHOT_QUALITY,
            )
        except ToolboxError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to capture screenshot: {e}")
            raise ActionError("take screenshot", e) from e

        self.logger.debug(f"Screenshot captured successfully: size={len(image)}")
        return image

    async def pdf(self) -> bytes:
        """Render the page to PDF with background graphics."""
        self._require_ready("print to PDF")
        self.logger.debug("Generating PDF")
        try:
            result = await self.session.call(
                "print to PDF",
                self.session.cdp.send,
                "Page.printToPDF",
                {"printBackground": True},
            )
            document = base64.b64decode(result["data"])
        except ToolboxError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to generate PDF: {e}")
            raise ActionError("print to PDF", e) from e

        self.logger.debug(f"PDF generated successfully: size={len(document)}")
        return document

    async def text_by_selector(self, selector: str) -> str:
        """Text of every element matching a CSS selector, one per line.

        Empty and whitespace-only texts are skipped; no match yields "".
        """
        action = f"get text by selector {selector!r}"
        self._require_ready(action)
        self.logger.debug(f"Extracting text by CSS selector: {selector}")
        try:
            texts: List[str] = await self.session.call(
                action, self.session.page.evaluate, TEXT_BY_SELECTOR_JS, selector
            )
        except ToolboxError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to extract text by selector {selector}: {e}")
            raise ActionError(action, e) from e

        result = "\n".join(texts or [])
        self.logger.debug(
            f"Successfully extracted text: selector={selector} elements={len(texts or [])} length={len(result)}"
        )
        return result

    async def body_text(self) -> str:
        """All visible text of the page body."""
        return await self.text_by_selector("body")
