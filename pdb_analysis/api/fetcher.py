"""
Resilient JSON fetcher for the RCSB PDB and UniProt APIs.

Every upstream request in the toolkit goes through ``ResilientFetcher``.
One call issues one logical request: transport failures and timeouts are
retried with exponential backoff, a 404 on an ``/entry/<ID>`` lookup is
retried once against the RCSB GraphQL endpoint, and bodies that are not
valid JSON are salvaged down to their title when possible. Whatever goes
wrong, the caller receives ``None`` instead of an exception.
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import urlsplit

import httpx

from ..config import APIConfig, RetryConfig, get_config
from ..errors import (
    APIError, DataError, ErrorHandler, NetworkError, PDBAnalysisError,
    ValidationError, create_error_context, get_error_handler
)
from ..logging_config import log_api_call, log_error_with_context
from ..retry import RetryController, SleepFunc

DEFAULT_TIMEOUT_MS = 30000
ALLOWED_METHODS = ("GET", "POST")

ENTRY_ID_LENGTH = 4
ERROR_BODY_PREVIEW = 200

GRAPHQL_ENTRY_QUERY = '{ entry(entry_id:"%s") { rcsb_id struct { title } } }'

TITLE_PATTERN = re.compile(r'"title"\s*:\s*"([^"]+)"')


@dataclass(frozen=True)
class RequestDescriptor:
    """A single logical request. Immutable once fetching starts."""
    url: str
    method: str = "GET"
    body: Optional[Any] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self):
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValidationError("Request URL must be a non-empty string")
        method = str(self.method).upper()
        if method not in ALLOWED_METHODS:
            raise ValidationError(f"Unsupported HTTP method: {self.method}")
        object.__setattr__(self, "method", method)
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int) or self.timeout_ms <= 0:
            raise ValidationError(f"Timeout must be a positive number of milliseconds, got {self.timeout_ms!r}")

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass(frozen=True)
class Success:
    """A 2xx response."""
    text: str
    status_code: int = 200


@dataclass(frozen=True)
class TransientFailure:
    """Network error or timeout that outlived the retry budget."""
    cause: Exception


@dataclass(frozen=True)
class HttpError:
    """A non-2xx response."""
    status_code: int
    body_text: str


AttemptOutcome = Union[Success, TransientFailure, HttpError]


def entry_identifier(url: str) -> Optional[str]:
    """
    Return the identifier of an entry lookup URL.

    Only URLs whose last path segment is exactly four characters long and
    directly follows an ``entry`` segment qualify. The segment is returned
    as-is; callers upper-case identifiers before building URLs.
    """
    segments = urlsplit(url).path.split("/")
    if len(segments) >= 2 and segments[-2] == "entry" and len(segments[-1]) == ENTRY_ID_LENGTH:
        return segments[-1]
    return None


def salvage_title(text: str) -> Optional[Dict[str, Any]]:
    """Recover ``{"struct": {"title": ...}}`` from an undecodable body."""
    if not text:
        return None
    match = TITLE_PATTERN.search(text)
    if match:
        return {"struct": {"title": match.group(1)}}
    return None


class ResilientFetcher:
    """
    Fetches JSON with retry, timeout, GraphQL fallback and title salvage.

    The fetcher holds configuration only. Each ``fetch`` call owns its retry
    state and timers, so one instance can serve concurrent calls.
    """

    def __init__(
        self,
        api_config: Optional[APIConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize the fetcher.

        Args:
            api_config: API configuration, global config if not provided
            retry_config: Retry configuration, global config if not provided
            client: Shared HTTP client; when omitted each call opens and
                closes its own
            transport: Transport for per-call clients (tests use
                ``httpx.MockTransport``)
            sleep: Coroutine used for backoff waits
            error_handler: Error handler, global handler if not provided
        """
        system_config = get_config()
        self.config = api_config or system_config.api
        self.retry_controller = RetryController(retry_config or system_config.retry, sleep=sleep)
        self.error_handler = error_handler or get_error_handler()
        self._client = client
        self._transport = transport
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def build_headers(self, descriptor: RequestDescriptor) -> Dict[str, str]:
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
        }
        if descriptor.has_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def fetch(self, descriptor: RequestDescriptor) -> Optional[Any]:
        """
        Fetch and decode one logical request.

        Args:
            descriptor: The request to perform

        Returns:
            The decoded JSON value, a salvaged ``{"struct": {"title": ...}}``
            object, or None when no usable data could be obtained
        """
        try:
            if self._client is not None:
                return await self._fetch_with_client(self._client, descriptor)
            async with httpx.AsyncClient(transport=self._transport, timeout=descriptor.timeout_seconds) as client:
                return await self._fetch_with_client(client, descriptor)
        except Exception as e:
            log_error_with_context(self.logger, e, "fetch", url=descriptor.url, method=descriptor.method)
            return None

    async def _fetch_with_client(self, client: httpx.AsyncClient, descriptor: RequestDescriptor) -> Optional[Any]:
        self.logger.debug(
            "Making %s request to %s",
            descriptor.method,
            descriptor.url,
            extra={
                "url": descriptor.url,
                "method": descriptor.method,
                "body_preview": json.dumps(descriptor.body)[:ERROR_BODY_PREVIEW] if descriptor.has_body else None,
            }
        )

        outcome = await self._send(client, descriptor)

        if isinstance(outcome, TransientFailure):
            return None

        if isinstance(outcome, HttpError):
            if outcome.status_code == 404:
                rescued = await self._graphql_fallback(client, descriptor)
                if rescued is not None:
                    return rescued
            self.error_handler.handle_error(
                APIError(
                    f"HTTP error {outcome.status_code} from {descriptor.url}: "
                    f"{outcome.body_text[:ERROR_BODY_PREVIEW]}",
                    status_code=outcome.status_code,
                    body=outcome.body_text
                ),
                create_error_context(
                    operation="fetch",
                    request_url=descriptor.url,
                    request_method=descriptor.method,
                    response_status=outcome.status_code
                )
            )
            return None

        return self._decode(outcome.text, descriptor)

    async def _send(self, client: httpx.AsyncClient, descriptor: RequestDescriptor) -> AttemptOutcome:
        """Run the attempt loop. Only transport failures and timeouts are retried."""
        async def attempt() -> AttemptOutcome:
            return await self._attempt(client, descriptor)

        try:
            return await self.retry_controller.execute_with_retry_async(
                attempt,
                service=urlsplit(descriptor.url).netloc or "unknown",
                operation_name=f"{descriptor.method} {descriptor.url}",
                error_handler=self.error_handler
            )
        except NetworkError as e:
            return TransientFailure(cause=e)

    async def _attempt(self, client: httpx.AsyncClient, descriptor: RequestDescriptor) -> AttemptOutcome:
        """
        Perform one HTTP exchange bounded by the descriptor timeout.

        ``asyncio.wait_for`` cancels the in-flight request when the timeout
        fires, so the connection is released rather than leaked.

        Raises:
            NetworkError: On transport failure or timeout
        """
        content = json.dumps(descriptor.body).encode("utf-8") if descriptor.has_body else None
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.request(
                    descriptor.method,
                    descriptor.url,
                    headers=self.build_headers(descriptor),
                    content=content,
                    timeout=descriptor.timeout_seconds
                ),
                timeout=descriptor.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"Request timed out after {descriptor.timeout_ms}ms: {descriptor.url}",
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(f"Network error for {descriptor.url}: {e}", original_exception=e)

        log_api_call(
            self.logger,
            api_name=urlsplit(descriptor.url).netloc,
            endpoint=descriptor.url,
            method=descriptor.method,
            status_code=response.status_code,
            duration=time.monotonic() - started
        )

        if response.is_success:
            return Success(text=response.text, status_code=response.status_code)
        return HttpError(status_code=response.status_code, body_text=response.text)

    async def _graphql_fallback(self, client: httpx.AsyncClient, descriptor: RequestDescriptor) -> Optional[Dict[str, Any]]:
        """
        Look an entry up through GraphQL after a REST 404.

        A single attempt; any failure falls through to the caller's 404
        handling without being reported.
        """
        pdb_id = entry_identifier(descriptor.url)
        if pdb_id is None:
            return None

        self.logger.info(
            "Entry not found, trying GraphQL lookup for %s",
            pdb_id,
            extra={"pdb_id": pdb_id, "url": descriptor.url}
        )

        fallback = RequestDescriptor(
            url=self.config.pdb_graphql_api,
            method="POST",
            body={"query": GRAPHQL_ENTRY_QUERY % pdb_id},
            timeout_ms=descriptor.timeout_ms
        )
        try:
            outcome = await self._attempt(client, fallback)
        except NetworkError as e:
            self.logger.debug("GraphQL lookup failed: %s", e, extra={"pdb_id": pdb_id})
            return None

        if not isinstance(outcome, Success):
            self.logger.debug("GraphQL lookup returned %s", outcome, extra={"pdb_id": pdb_id})
            return None

        try:
            payload = json.loads(outcome.text)
        except json.JSONDecodeError:
            return None

        data = payload.get("data") if isinstance(payload, dict) else None
        entry = data.get("entry") if isinstance(data, dict) else None
        if entry:
            self.logger.info("Retrieved %s via GraphQL", pdb_id, extra={"pdb_id": pdb_id})
            return entry
        return None

    def _decode(self, text: str, descriptor: RequestDescriptor) -> Optional[Any]:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            self.error_handler.handle_error(
                DataError(f"Invalid JSON response from {descriptor.url}: {e}", original_exception=e),
                create_error_context(
                    operation="decode",
                    request_url=descriptor.url,
                    request_method=descriptor.method,
                    body_preview=text[:ERROR_BODY_PREVIEW]
                )
            )

        salvaged = salvage_title(text)
        if salvaged is not None:
            self.logger.warning(
                "Salvaged partial data from malformed response",
                extra={"url": descriptor.url, "title": salvaged["struct"]["title"]}
            )
        return salvaged


async def make_api_request(
    url: str,
    method: str = "GET",
    body: Optional[Any] = None,
    timeout_ms: Optional[int] = None,
    fetcher: Optional[ResilientFetcher] = None
) -> Optional[Any]:
    """
    Fetch ``url`` and return its decoded JSON, or None on any failure.

    Args:
        url: Target URL
        method: ``GET`` or ``POST``
        body: JSON-serialisable request body, sent as given
        timeout_ms: Per-attempt timeout, the configured default if omitted
        fetcher: Fetcher to use, a default one if not provided
    """
    fetcher = fetcher or ResilientFetcher()
    try:
        descriptor = RequestDescriptor(
            url=url,
            method=method,
            body=body,
            timeout_ms=timeout_ms if timeout_ms is not None else fetcher.config.request_timeout_ms
        )
    except PDBAnalysisError as e:
        fetcher.error_handler.handle_error(
            e, create_error_context(operation="build_request", request_url=url, request_method=method)
        )
        return None
    return await fetcher.fetch(descriptor)
