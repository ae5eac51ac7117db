"""Token endpoint calls: credential exchange and refresh.

NOTE: This module only talks to the token endpoints. Keeping the resulting
tokens is the job of `espec_api.auth.session.SessionStore`.
"""

import httpx
from loguru import logger

from espec_api.auth.session import TokenPair
from espec_api.client.exceptions import AuthenticationError
from espec_api.client.exceptions import NetworkError
from espec_api.client.exceptions import error_for_status

TOKEN_PATH = "/api/token/"
REFRESH_PATH = "/api/token/refresh/"


async def obtain_token_pair(http: httpx.AsyncClient, email: str, password: str) -> TokenPair:
    """
    Exchange credentials for an access/refresh token pair.

    The backend's USERNAME_FIELD is the email, so the payload is `{email, password}`.

    Raises
    ------
    AuthenticationError
        If the backend rejects the credentials (400 or 401) or answers without tokens
    SpecApiError
        Mapped from any other non-2xx status (e.g. NetworkError for a 5xx)
    NetworkError
        On transport failure
    """
    try:
        response = await http.post(TOKEN_PATH, json={"email": email, "password": password})
    except httpx.RequestError as e:
        raise NetworkError(f"Network error during token request: {e}") from e

    if response.status_code in (400, 401):
        logger.warning("Token request rejected", email=email, status_code=response.status_code)
        raise AuthenticationError("Credenciais inválidas", response.status_code)
    if not response.is_success:
        logger.error("Token endpoint failed", email=email, status_code=response.status_code)
        raise error_for_status(
            response.status_code, f"{response.status_code} {response.reason_phrase}: {response.text}"
        )

    try:
        data = response.json()
        return TokenPair(access=data["access"], refresh=data["refresh"])
    except (ValueError, KeyError, TypeError) as e:
        raise AuthenticationError(f"Resposta de token inválida: {e}") from e


async def refresh_access_token(http: httpx.AsyncClient, refresh_token: str) -> str:
    """
    Exchange a refresh token for a new access token.

    Raises
    ------
    AuthenticationError
        If there is no refresh token or the backend refuses it
    NetworkError
        On transport failure
    """
    if not refresh_token:
        raise AuthenticationError("Sem refresh token")

    try:
        response = await http.post(REFRESH_PATH, json={"refresh": refresh_token})
    except httpx.RequestError as e:
        raise NetworkError(f"Network error during token refresh: {e}") from e

    if not response.is_success:
        raise AuthenticationError("Falha ao renovar token", response.status_code)

    try:
        return response.json()["access"]
    except (ValueError, KeyError, TypeError) as e:
        raise AuthenticationError(f"Resposta de refresh inválida: {e}") from e
