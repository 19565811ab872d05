# === NAVMAP v1 ===
# {
#   "module": "HttpProvider.DataSource.network.client",
#   "purpose": "HTTPX client factory for data-source reads.",
#   "sections": [
#     {
#       "id": "create-http-client",
#       "name": "create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     },
#     {
#       "id": "create-ssl-context",
#       "name": "_create_ssl_context",
#       "anchor": "function-create-ssl-context",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory.

Each data-source read owns its client: one is created per execution and closed
when the execution finishes, so concurrent reads never share a connection pool,
cookies, or any other mutable transport state.

Example:
    >>> from HttpProvider.DataSource.settings import HttpClientConfiguration
    >>> with create_http_client(HttpClientConfiguration()) as client:
    ...     response = client.get("https://example.com/version")
"""

from __future__ import annotations

import logging
import ssl
from typing import Callable, Optional

import certifi
import httpx

from ..settings import HttpClientConfiguration

logger = logging.getLogger(__name__)

#: Signature of the factory the executor uses to obtain a client.
ClientFactory = Callable[[HttpClientConfiguration], httpx.Client]


def _create_ssl_context(verify: bool) -> ssl.SSLContext:
    """Create an SSL context using the certifi CA bundle.

    Args:
        verify: When ``False`` certificate and hostname checks are disabled.
    """
    if not verify:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED")
        return ctx

    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def _request_hook(request: httpx.Request) -> None:
    logger.debug(
        "http request",
        extra={"extra_fields": {"method": request.method, "url": str(request.url)}},
    )


def _response_hook(response: httpx.Response) -> None:
    logger.debug(
        "http response",
        extra={
            "extra_fields": {
                "method": response.request.method,
                "url": str(response.request.url),
                "status_code": response.status_code,
                "http_version": response.http_version,
            }
        },
    )


def create_http_client(
    config: HttpClientConfiguration,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create an HTTPX client configured from ``config``.

    Args:
        config: Timeout, redirect, TLS, and identity defaults.
        transport: Optional transport override (for example
            :class:`httpx.MockTransport` in tests).

    Returns:
        A new :class:`httpx.Client`; the caller is responsible for closing it.
    """
    kwargs = {}
    if transport is not None:
        kwargs["transport"] = transport
    else:
        kwargs["verify"] = _create_ssl_context(config.verify_tls)

    return httpx.Client(
        timeout=config.timeout(),
        follow_redirects=config.follow_redirects,
        max_redirects=config.max_redirects,
        headers={"User-Agent": config.user_agent},
        event_hooks={"request": [_request_hook], "response": [_response_hook]},
        **kwargs,
    )


__all__ = ["ClientFactory", "create_http_client"]
