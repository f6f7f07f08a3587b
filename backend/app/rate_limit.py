"""Rate limiting for the Chronolog backend.

The login limiter keys on the client address. ``X-Forwarded-For`` hops are
believed only while they come from trusted proxies: the chain is walked
from the right and the first untrusted address is the client.
"""

import ipaddress
import os
from functools import lru_cache

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("chronolog.rate_limit")

TRUSTED_PROXIES_ENV = "CHRONOLOG_TRUSTED_PROXY_CIDRS"

# Loopback and private ranges, used when the env var is unset
PRIVATE_NETWORKS = (
    "127.0.0.0/8",
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "::1/128",
    "fc00::/7",
)

Network = ipaddress.IPv4Network | ipaddress.IPv6Network


@lru_cache
def trusted_networks(raw: str | None = None) -> tuple[Network, ...]:
    """Parse a comma-separated CIDR list; invalid items are logged and skipped."""
    items = [part.strip() for part in raw.split(",")] if raw else list(PRIVATE_NETWORKS)
    parsed = []
    for item in filter(None, items):
        try:
            parsed.append(ipaddress.ip_network(item, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy CIDR: {item}")
    return tuple(parsed)


def is_trusted(address: str, networks: tuple[Network, ...]) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(ip in net for net in networks)


def get_client_ip(request) -> str:
    """Address to rate-limit on."""
    peer = get_remote_address(request)
    networks = trusted_networks(os.environ.get(TRUSTED_PROXIES_ENV))
    if not is_trusted(peer, networks):
        return peer

    header = request.headers.get("x-forwarded-for", "")
    hops = [hop.strip() for hop in header.split(",") if hop.strip()]
    for hop in reversed(hops):
        if not is_trusted(hop, networks):
            return hop
    return hops[0] if hops else peer


def login_rate_limit() -> str:
    """Limit string for the login route, read from settings at request time."""
    return get_settings().login_rate_limit


limiter = Limiter(key_func=get_client_ip)
