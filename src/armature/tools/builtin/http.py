"""
Web fetch tool for retrieving URL content.

Fetches with a GET request and returns the response text, truncated to
a fixed size so large pages do not flood the conversation.
"""

import asyncio
import json as json_lib
import logging
from typing import Any, Optional

import httpx

from armature.approval.models import ConfirmationKind, ConfirmationRequest
from armature.tools.base import Tool
from armature.tools.cancellation import CancellationToken
from armature.tools.models import ToolCallResult, ToolParameter

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 100_000
DEFAULT_TIMEOUT = 30.0
MAX_TIMEOUT = 120.0


class WebFetchTool(Tool):
    """Fetch the content of a URL."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize web fetch tool.

        Args:
            transport: httpx transport override (used by tests)
        """
        self._transport = transport
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return "web_fetch"

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return "WebFetch"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Fetch the content of a web page or API endpoint with an HTTP GET request. "
            "Redirects are followed. JSON responses are pretty-printed; "
            f"content longer than {MAX_CONTENT_LENGTH} characters is truncated."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="url",
                type="string",
                description="The URL to fetch (must start with http:// or https://)",
                required=True,
            ),
            ToolParameter(
                name="timeout",
                type="number",
                description=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT:g}, max: {MAX_TIMEOUT:g})",
                required=False,
                default=DEFAULT_TIMEOUT,
                minimum=0,
            ),
        ]

    def validate(self, args: dict[str, Any]) -> Optional[str]:
        """Only http(s) URLs are fetched."""
        error = super().validate(args)
        if error:
            return error
        if not args["url"].startswith(("http://", "https://")):
            return "URL must start with http:// or https://"
        return None

    async def should_confirm(self, args: dict[str, Any]) -> Optional[ConfirmationRequest]:
        """Confirm outbound requests."""
        url = args["url"]
        return ConfirmationRequest(
            kind=ConfirmationKind.INFO,
            title="Confirm Web Fetch",
            summary=f"Fetch content from {url}",
            details={"urls": [url]},
            tool_name=self.name,
        )

    async def execute(self, args: dict[str, Any], cancel: CancellationToken) -> ToolCallResult:
        """Fetch the URL."""
        url: str = args["url"]
        timeout: float = min(float(args.get("timeout") or DEFAULT_TIMEOUT), MAX_TIMEOUT)

        try:
            async with httpx.AsyncClient(transport=self._transport, follow_redirects=True) as client:
                request = asyncio.ensure_future(client.get(url, timeout=timeout))
                cancel_wait = asyncio.ensure_future(cancel.wait())
                try:
                    await asyncio.wait({request, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    cancel_wait.cancel()
                    if not request.done():
                        request.cancel()
                        await asyncio.gather(request, return_exceptions=True)

                if request.cancelled():
                    logger.info(f"Fetch cancelled: {url}")
                    return ToolCallResult.failure(f"Request cancelled: {cancel.reason or 'cancelled'}")
                response = request.result()
        except httpx.TimeoutException as e:
            return ToolCallResult.failure(f"Request timed out after {timeout}s: {str(e)}")
        except httpx.RequestError as e:
            return ToolCallResult.failure(f"Request failed: {str(e)}")

        if response.status_code >= 400:
            return ToolCallResult.failure(
                f"HTTP {response.status_code} {response.reason_phrase}",
                content=f"Error fetching {url}: HTTP {response.status_code} {response.reason_phrase}\n"
                f"{response.text[:1000]}",
            )

        content_type = response.headers.get("content-type", "")
        text = response.text
        if "application/json" in content_type:
            try:
                text = json_lib.dumps(response.json(), indent=2)
            except ValueError:
                pass

        truncated = len(text) > MAX_CONTENT_LENGTH
        if truncated:
            text = text[:MAX_CONTENT_LENGTH] + f"\n\n... ({len(response.text)} characters total, truncated)"

        return ToolCallResult.success(
            text,
            display=f"Fetched {response.url} (HTTP {response.status_code}, {len(response.text)} characters)",
        )
