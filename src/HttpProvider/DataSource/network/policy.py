# === NAVMAP v1 ===
# {
#   "module": "HttpProvider.DataSource.network.policy",
#   "purpose": "HTTP policy constants and defaults.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP policy constants and defaults.

Timeout budgets, redirect behaviour, and retry backoff bounds used when a data
source leaves the corresponding attribute unset. A configured
``request_timeout`` always takes precedence over these budgets.
"""

from .._version import __version__

# ============================================================================
# Timeout Budgets (seconds)
# ============================================================================

#: Connection establishment timeout (TCP handshake plus TLS)
HTTP_CONNECT_TIMEOUT = 10.0

#: Read timeout (time between data packets on an established connection)
HTTP_READ_TIMEOUT = 30.0

#: Write timeout (time to send the request)
HTTP_WRITE_TIMEOUT = 30.0

#: Pool timeout (acquiring a connection from the pool)
HTTP_POOL_TIMEOUT = 10.0


# ============================================================================
# Retry Backoff (milliseconds)
# ============================================================================

#: Sleep before the first retry; doubles for each later retry
RETRY_MIN_DELAY_MS = 1_000

#: Ceiling for any single backoff sleep
RETRY_MAX_DELAY_MS = 30_000


# ============================================================================
# Redirects
# ============================================================================

#: Redirects are followed with the platform defaults; not configurable per source
FOLLOW_REDIRECTS = True

#: Maximum number of redirect hops before the transport gives up
MAX_REDIRECTS = 10


# ============================================================================
# Request Identity
# ============================================================================

#: Only GET is issued by the data source
REQUEST_METHOD = "GET"

#: Schemes accepted for the ``url`` attribute
ALLOWED_SCHEMES = frozenset({"http", "https"})

DEFAULT_USER_AGENT = f"httpdata/{__version__}"


__all__ = [
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_READ_TIMEOUT",
    "HTTP_WRITE_TIMEOUT",
    "HTTP_POOL_TIMEOUT",
    "RETRY_MIN_DELAY_MS",
    "RETRY_MAX_DELAY_MS",
    "FOLLOW_REDIRECTS",
    "MAX_REDIRECTS",
    "REQUEST_METHOD",
    "ALLOWED_SCHEMES",
    "DEFAULT_USER_AGENT",
]
