# attendance_export/services/graph_client.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from attendance_export.core.config import get_settings
from attendance_export.core.logging_config import get_logger

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class GraphClientError(RuntimeError):
    """
    Raised when the GraphClient cannot obtain an access token or when a
    Graph API call fails in a non-recoverable way (including after all
    retries have been used up).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class _TokenState:
    access_token: str
    expires_at: datetime


class GraphClient:
    """
    Microsoft Graph API client using client-credentials flow.

    Responsibilities
    ----------------
    - Fetch and cache an access token using the OAuth2 client-credentials flow.
    - Provide thin convenience methods for GET/POST requests to Graph.
    - Pace requests with a fixed delay between successive calls so a run
      stays under the tenant's rate limit.
    - Retry throttled (429) and transiently failing (5xx, network) calls.

    Notes
    -----
    - Token caching is in-memory for this process only.
    - A 429 waits for the server's Retry-After (or `throttle_default_wait`
      seconds when none is sent). Other transient failures wait
      `attempt * retry_base_delay` seconds.
    - After `max_retries` retries the last error is raised as GraphClientError.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        base_url: str = "https://graph.microsoft.com",
        scope: str = "https://graph.microsoft.com/.default",
        timeout_seconds: float = 10.0,
        request_delay_ms: int = 0,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        throttle_default_wait: float = 60.0,
        sleep: SleepFunc | None = None,
    ) -> None:
        if not tenant_id or not client_id or not client_secret:
            raise ValueError("tenant_id, client_id and client_secret are required")

        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._scope = scope
        self._timeout_seconds = timeout_seconds

        self._request_delay = max(request_delay_ms, 0) / 1000.0
        self._max_retries = max(max_retries, 0)
        self._retry_base_delay = retry_base_delay
        self._throttle_default_wait = throttle_default_wait
        self._sleep: SleepFunc = sleep or asyncio.sleep

        self._token_state: Optional[_TokenState] = None
        self._calls_made = 0

    @property
    def token_url(self) -> str:
        """
        Returns the OAuth2 token endpoint for the configured tenant.
        """
        return f"https://login.microsoftonline.com/{self._tenant_id}/oauth2/v2.0/token"

    @property
    def calls_made(self) -> int:
        return self._calls_made

    async def _fetch_token(self) -> _TokenState:
        """
        Fetch a fresh access token from Azure AD using client credentials.
        """
        data = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
            "scope": self._scope,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.post(self.token_url, data=data)
        except httpx.TransportError as exc:
            raise GraphClientError(f"Failed to reach Azure AD token endpoint: {exc}") from exc

        if resp.status_code != 200:
            raise GraphClientError(
                f"Failed to obtain Graph token (status={resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )

        payload = resp.json()
        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")

        if not access_token or not isinstance(expires_in, (int, float)):
            raise GraphClientError(
                "Invalid token response from Azure AD (missing access_token/expires_in)"
            )

        # Refresh slightly before real expiry.
        now = datetime.now(tz=timezone.utc)
        safety_margin = 60  # seconds
        expires_at = now + timedelta(seconds=float(expires_in) - safety_margin)

        logger.debug("graph_token_acquired", expires_at=expires_at.isoformat())
        return _TokenState(access_token=access_token, expires_at=expires_at)

    async def get_access_token(self) -> str:
        """
        Return a valid access token, using a cached value if still valid.
        """
        now = datetime.now(tz=timezone.utc)
        if self._token_state and self._token_state.expires_at > now:
            return self._token_state.access_token

        self._token_state = await self._fetch_token()
        return self._token_state.access_token

    def _build_url(self, path: str) -> str:
        # nextLink values from Graph are absolute URLs.
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _pace(self) -> None:
        if self._calls_made and self._request_delay > 0:
            await self._sleep(self._request_delay)
        self._calls_made += 1

    def _retry_after_seconds(self, resp: httpx.Response) -> float:
        headers = getattr(resp, "headers", None) or {}
        raw = headers.get("Retry-After") or headers.get("retry-after")
        if raw is None:
            return self._throttle_default_wait
        try:
            return max(float(raw), 0.0)
        except (TypeError, ValueError):
            return self._throttle_default_wait

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Issue an authenticated request to Graph, retrying throttled and
        transient failures.

        Returns the successful (2xx) response; raises GraphClientError
        otherwise.
        """
        url = self._build_url(path)
        attempt = 0

        while True:
            token = await self.get_access_token()
            headers = {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            }

            await self._pace()
            try:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    resp = await client.request(
                        method=method.upper(),
                        url=url,
                        headers=headers,
                        params=params,
                        json=json,
                    )
            except httpx.TransportError as exc:
                if attempt >= self._max_retries:
                    raise GraphClientError(
                        f"Graph {method.upper()} {url} failed after {attempt} retries: {exc}"
                    ) from exc
                attempt += 1
                delay = attempt * self._retry_base_delay
                logger.warning(
                    "graph_request_transport_error",
                    url=url,
                    attempt=attempt,
                    wait_seconds=delay,
                    error=str(exc),
                )
                await self._sleep(delay)
                continue

            status_code = resp.status_code
            if status_code // 100 == 2:
                return resp

            retryable = status_code == 429 or status_code >= 500
            if not retryable or attempt >= self._max_retries:
                raise GraphClientError(
                    f"Graph {method.upper()} failed (status={status_code}): {resp.text}",
                    status_code=status_code,
                )

            attempt += 1
            if status_code == 429:
                delay = self._retry_after_seconds(resp)
                logger.warning(
                    "graph_request_throttled",
                    url=url,
                    attempt=attempt,
                    wait_seconds=delay,
                )
            else:
                delay = attempt * self._retry_base_delay
                logger.warning(
                    "graph_request_server_error",
                    url=url,
                    status_code=status_code,
                    attempt=attempt,
                    wait_seconds=delay,
                )
            await self._sleep(delay)

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Issue a GET request to a Graph endpoint and return the JSON payload.
        """
        resp = await self._request("GET", path, params=params)
        return resp.json()

    async def post_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Dict[str, Any]:
        """
        Issue a POST request to a Graph endpoint and return the JSON payload.
        """
        resp = await self._request("POST", path, params=params, json=json)
        return resp.json()

    async def get_paged(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        max_pages: int | None = None,
    ) -> List[Dict[str, Any]]:
        """
        Collect `value` items across pages by following `@odata.nextLink`.

        The nextLink already carries the original query, so params are only
        sent with the first request.
        """
        items: List[Dict[str, Any]] = []
        next_path: str | None = path
        next_params = params
        pages = 0

        while next_path:
            payload = await self.get_json(next_path, params=next_params)
            items.extend(payload.get("value", []))
            pages += 1
            if max_pages is not None and pages >= max_pages:
                break
            next_path = payload.get("@odata.nextLink")
            next_params = None

        return items


_graph_client_instance: Optional[GraphClient] = None


def build_graph_client(settings=None) -> GraphClient:
    """
    Construct a GraphClient from application settings.

    Raises ConfigurationError when Graph credentials are missing.
    """
    settings = settings or get_settings()
    settings.require_graph_credentials()
    return GraphClient(
        tenant_id=settings.GRAPH_TENANT_ID,
        client_id=settings.GRAPH_CLIENT_ID,
        client_secret=settings.GRAPH_CLIENT_SECRET,
        base_url=str(settings.GRAPH_BASE_URL or "https://graph.microsoft.com"),
        timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
        request_delay_ms=settings.REQUEST_DELAY_MS,
        max_retries=settings.MAX_RETRIES,
        retry_base_delay=settings.RETRY_BASE_DELAY_SECONDS,
        throttle_default_wait=settings.THROTTLE_DEFAULT_WAIT_SECONDS,
    )


def get_graph_client() -> GraphClient:
    """
    Lazily construct the shared GraphClient instance using application settings.
    """
    global _graph_client_instance
    if _graph_client_instance is None:
        _graph_client_instance = build_graph_client()
    return _graph_client_instance

