"""
Client IP resolution for the Turnstile gate.

Works on any header mapping (plain dict or Starlette ``Headers``) so it is
testable without a running server. Header names are matched case-insensitively.
"""

from __future__ import annotations

from typing import Mapping, Optional

# Consulted in order after the platform-provided peer address
IP_HEADERS: tuple[str, ...] = ("cf-connecting-ip", "x-forwarded-for")


def normalize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` keyed by lower-cased header name."""
    return {name.lower(): value for name, value in headers.items()}


def resolve_client_ip(
    headers: Mapping[str, str], platform_ip: Optional[str] = None
) -> Optional[str]:
    """Return the first non-empty candidate client IP, or None.

    Priority order:

    1. ``platform_ip``: the peer address reported by the ASGI server
    2. ``CF-Connecting-IP``: Cloudflare
    3. ``X-Forwarded-For``: first IP in the list
    """
    if platform_ip:
        return platform_ip

    headers = normalize_headers(headers)
    for header in IP_HEADERS:
        ip_value: Optional[str] = headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return None

