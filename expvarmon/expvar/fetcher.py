"""
Expvar Monitor - Expvar Tree Fetcher

Retrieves a target's expvar document over HTTP and parses it into a plain
tree of dicts, lists and scalars. The fetcher never touches Target state;
callers decide what a failure means for the target.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Union

import aiohttp
import structlog

from expvarmon.errors import (
    EndpointNotFoundError,
    FetchTimeoutError,
    MalformedDocumentError,
    NetworkError,
    UnexpectedStatusError,
)

logger = structlog.get_logger(__name__)

# Default path Go's expvar package serves its variables on
DEFAULT_ENDPOINT = "/debug/vars"


def parse_expvar(body: Union[str, bytes], address: str = "") -> Dict[str, Any]:
    """Parse an expvar document, which must be a JSON object."""
    try:
        document = json.loads(body)
    except ValueError as e:
        raise MalformedDocumentError(address, f"Invalid JSON document: {e}") from e

    if not isinstance(document, dict):
        raise MalformedDocumentError(
            address, f"Expected a JSON object, got {type(document).__name__}"
        )
    return document


class ExpvarFetcher:
    """HTTP client for expvar endpoints with a bounded per-fetch timeout."""

    def __init__(self, timeout: float = 3.0, session: Optional[aiohttp.ClientSession] = None):
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ExpvarFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this fetcher created it."""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(self, address: str) -> Dict[str, Any]:
        """
        Fetch and parse the expvar document at ``address``.

        Raises:
            EndpointNotFoundError: the endpoint answered 404
            UnexpectedStatusError: any other non-success status
            FetchTimeoutError: no complete answer within the timeout
            NetworkError: connection failure
            MalformedDocumentError: body is not a JSON object
        """
        session = self._get_session()
        try:
            async with session.get(
                address, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                if resp.status == 404:
                    raise EndpointNotFoundError(
                        address, "Vars not found. Did you expose expvars on this process?"
                    )
                if resp.status >= 400:
                    raise UnexpectedStatusError(address, resp.status)
                body = await resp.read()
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(address, f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise NetworkError(address, str(e) or type(e).__name__) from e

        logger.debug("Fetched expvars", address=address, size=len(body))
        return parse_expvar(body, address)
