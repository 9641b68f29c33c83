"""HTTP helpers shared by the wallet and ledger clients.

Maps transport failures and status codes onto the sync error taxonomy:
- 401/403 -> AuthError (never retried)
- 429, 5xx, timeouts, connection errors -> TransientNetworkError (retried by the caller)
"""

import logging

import httpx

from wallet_sync.errors import AuthError, TransientNetworkError

log = logging.getLogger(__name__)

MAX_ERROR_DETAIL_CHARS = 500  # Truncation limit for error details in log/exception messages
AUTH_ERROR_CODES = {401, 403}
RETRY_CODES = {408, 425, 429, 500, 502, 503, 504}


def send(client: httpx.Client, service: str, method: str, url: str, **kwargs) -> httpx.Response:
    """Send a request, raising the sync error for auth and transient failures.

    Other non-2xx responses are returned for the caller to interpret.
    """
    try:
        response = client.request(method, url, **kwargs)
    except (httpx.TimeoutException, httpx.RequestError) as e:
        raise TransientNetworkError(f"{service} request failed: {type(e).__name__}: {e}") from e

    if response.status_code in AUTH_ERROR_CODES:
        raise AuthError(service, f"HTTP {response.status_code}: {error_detail(response)}")

    if response.status_code in RETRY_CODES or response.status_code >= 500:
        raise TransientNetworkError(
            f"{service} returned HTTP {response.status_code}: {error_detail(response)}",
            status_code=response.status_code,
        )

    log.debug("%s %s -> %d", method, url, response.status_code)
    return response


def error_detail(response: httpx.Response) -> str:
    return response.text[:MAX_ERROR_DETAIL_CHARS]
