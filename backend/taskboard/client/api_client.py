import logging
from typing import Any, Callable, Optional

import httpx

from taskboard.client.refresh import RefreshCoordinator
from taskboard.client.tokens import TokenManager

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "login": "/auth/login",
    "register": "/auth/register",
    "refresh": "/auth/refresh",
    "logout": "/auth/logout",
}

_AUTH_ENDPOINTS = frozenset(ENDPOINTS.values())


class SessionExpired(Exception):
    pass


class ApiClient:
    def __init__(
        self,
        base_url: str,
        tokens: Optional[TokenManager] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self.tokens = tokens or TokenManager()
        self.on_session_expired = on_session_expired
        self._http = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        self.refresher = RefreshCoordinator(self._refresh_access_token)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        response, sent_token = await self._send(method, url, self.tokens.access_token, **kwargs)
        if response.status_code != 401 or url in _AUTH_ENDPOINTS:
            return response

        current = self.tokens.access_token
        if current and current != sent_token:
            # Another request refreshed while this one was on the wire.
            token = current
        else:
            token = await self.refresher.access_token()
        retried, _ = await self._send(method, url, token, **kwargs)
        return retried

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def register(self, email: str, password: str, name: str) -> dict:
        return await self._authenticate(
            ENDPOINTS["register"], {"email": email, "password": password, "name": name}
        )

    async def login(self, email: str, password: str) -> dict:
        return await self._authenticate(ENDPOINTS["login"], {"email": email, "password": password})

    async def logout(self) -> None:
        refresh_token = self.tokens.refresh_token
        try:
            if refresh_token:
                await self._http.post(ENDPOINTS["logout"], json={"refreshToken": refresh_token})
        except httpx.HTTPError:
            # Local credentials are dropped regardless of the server's answer.
            logger.warning("Logout request failed", exc_info=True)
        finally:
            self._expire_session()

    def is_authenticated(self) -> bool:
        return bool(self.tokens.refresh_token)

    async def _authenticate(self, url: str, payload: dict) -> dict:
        response = await self._http.post(url, json=payload)
        response.raise_for_status()
        data = response.json()
        self.tokens.set_tokens(data["accessToken"], data["refreshToken"])
        return data

    async def _send(
        self, method: str, url: str, token: Optional[str], **kwargs: Any
    ) -> tuple[httpx.Response, Optional[str]]:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        response = await self._http.request(method, url, headers=headers, **kwargs)
        return response, token

    async def _refresh_access_token(self) -> str:
        refresh_token = self.tokens.refresh_token
        if not refresh_token:
            self._expire_session()
            raise SessionExpired("No refresh token available")
        try:
            response = await self._http.post(ENDPOINTS["refresh"], json={"refreshToken": refresh_token})
            response.raise_for_status()
            data = response.json()
            access_token, rotated = data["accessToken"], data["refreshToken"]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            self._expire_session()
            raise SessionExpired("Session refresh failed") from exc
        self.tokens.set_tokens(access_token, rotated)
        return access_token

    def _expire_session(self) -> None:
        self.tokens.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()
