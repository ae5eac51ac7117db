"""Async client for the upstream specification REST API.

Every outbound call goes through `SpecApiClient.request`, which:
- attaches the session's bearer token
- retries exactly once after a 401 by exchanging the refresh token
- clears the session and raises SessionExpiredError if that refresh fails
- raises a typed SpecApiError for any other non-2xx response
"""

from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from urllib.parse import urlsplit

import httpx
from loguru import logger

from espec_api.auth.session import Session
from espec_api.auth.session import SessionStore
from espec_api.auth.token_client import refresh_access_token
from espec_api.client.cancel import CancelToken
from espec_api.client.exceptions import SessionExpiredError
from espec_api.client.exceptions import SpecApiError
from espec_api.client.exceptions import NetworkError
from espec_api.client.exceptions import error_for_status
from espec_api.settings import Settings


def build_http_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Create the shared httpx client pointed at the upstream API."""
    return httpx.AsyncClient(
        base_url=settings.upstream_api_url,
        timeout=settings.request_timeout_seconds,
        transport=transport,
    )


def relative_url(url: str) -> str:
    """Strip scheme and host from an absolute `next` link so it resolves against our base URL."""
    parts = urlsplit(url)
    if not parts.scheme:
        return url
    return f"{parts.path}?{parts.query}" if parts.query else parts.path


class SpecApiClient:
    """
    Session-bound client for the upstream REST API.

    Parameters
    ----------
    http : httpx.AsyncClient
        Shared transport client (base URL and timeout already configured)
    session : Optional[Session]
        Authenticated session; anonymous when None
    session_store : Optional[SessionStore]
        Store receiving refreshed tokens, or the clear() on refresh failure
    cancel_token : Optional[CancelToken]
        Checked before every upstream call
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: Optional[Session] = None,
        session_store: Optional[SessionStore] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.http = http
        self.session = session
        self.session_store = session_store
        self.cancel_token = cancel_token or CancelToken()

    def _headers(self, accept: str) -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.session and self.session.access_token:
            headers["Authorization"] = f"Bearer {self.session.access_token}"
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        json: Any,
        params: Optional[Dict[str, Any]],
        accept: str,
    ) -> httpx.Response:
        self.cancel_token.raise_if_cancelled()
        try:
            return await self.http.request(method, path, json=json, params=params, headers=self._headers(accept))
        except httpx.RequestError as e:
            logger.error("Upstream transport failure", method=method, path=path, error=str(e))
            raise NetworkError(f"Falha de comunicação com a API: {e}") from e

    async def _refresh_session(self) -> None:
        """Single refresh attempt; on failure the session is cleared and SessionExpiredError raised."""
        session = self.session
        try:
            new_access = await refresh_access_token(self.http, session.refresh_token)
        except SpecApiError as e:
            logger.warning("Token refresh failed, clearing session", session_id=session.session_id, error=str(e))
            if self.session_store:
                self.session_store.clear(session.session_id)
            self.session = None
            raise SessionExpiredError() from e

        session.access_token = new_access
        if self.session_store:
            # Only the token field; other fields may have been saved by concurrent requests
            self.session_store.update_access_token(session.session_id, new_access)
        logger.info("Access token refreshed", session_id=session.session_id)

    async def _request_raw(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "application/json",
    ) -> httpx.Response:
        method = method.upper()
        response = await self._send(method, path, json, params, accept)

        if response.status_code == 401 and self.session and self.session.access_token:
            await self._refresh_session()
            response = await self._send(method, path, json, params, accept)

        if not response.is_success:
            message = f"{response.status_code} {response.reason_phrase}: {response.text}"
            logger.warning(
                "Upstream call failed",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise error_for_status(response.status_code, message)

        logger.debug("Upstream call succeeded", method=method, path=path, status_code=response.status_code)
        return response

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a call and decode the body.

        Returns
        -------
        Any
            Parsed JSON when the response is JSON, text otherwise, None for an empty body.
        """
        response = await self._request_raw(method, path, json=json, params=params)
        if not response.content:
            return None
        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def get_bytes(self, path: str) -> Tuple[bytes, str]:
        """Download a binary body (e.g. PDF); returns (content, content_type)."""
        response = await self._request_raw("GET", path, accept="application/pdf, */*")
        return response.content, response.headers.get("content-type", "application/octet-stream")

    async def iter_pages(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Walk a DRF paginated listing, yielding each raw page payload.

        A bare list response is treated as a single page. The cancel token is
        checked before each page request.
        """
        next_path: Optional[str] = path
        next_params = params
        while next_path:
            payload = await self.get(next_path, params=next_params)
            if isinstance(payload, list):
                yield {"results": payload, "next": None, "previous": None, "count": len(payload)}
                return
            if not isinstance(payload, dict):
                logger.warning("Unexpected listing payload", path=next_path, payload_type=type(payload).__name__)
                return
            yield payload
            next_link = payload.get("next")
            next_path = relative_url(next_link) if next_link else None
            next_params = None  # the next link already carries the query string

    async def fetch_all(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Concatenate every page's rows, stopping early once `limit` rows are collected."""
        rows: List[Dict[str, Any]] = []
        async for page in self.iter_pages(path, params=params):
            rows.extend(page.get("results") or [])
            if limit is not None and len(rows) >= limit:
                logger.warning("Listing limit reached", path=path, limit=limit)
                return rows[:limit]
        return rows
