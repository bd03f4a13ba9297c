"""URL safety gate consulted before a crawl is enqueued."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

METADATA_HOSTS = frozenset({"169.254.169.254", "metadata", "metadata.google.internal"})


@dataclass(slots=True, frozen=True)
class PolicyDecision:
    valid: bool
    reason: str | None = None


class PolicyGate(Protocol):
    async def validate(self, url: str) -> PolicyDecision:
        ...


def is_disallowed_address(address: str) -> bool:
    """Return True for loopback, private, link-local and other non-public ranges."""

    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return True
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
        or ip in ipaddress.ip_network("100.64.0.0/10")
    )


class DnsPolicyGate:
    """Reject non-http(s) URLs and hosts resolving into private address space."""

    def __init__(
        self,
        *,
        allowed_schemes: Iterable[str] = ("http", "https"),
        allow_private: bool = False,
        allowed_hostnames: Iterable[str] = (),
    ) -> None:
        self._schemes = frozenset(allowed_schemes)
        self._allow_private = allow_private
        self._allowed_hostnames = frozenset(host.lower() for host in allowed_hostnames)

    async def validate(self, url: str) -> PolicyDecision:
        if not url or not isinstance(url, str):
            return PolicyDecision(False, "no url provided")

        parsed = urlparse(url.strip())
        if parsed.scheme.lower() not in self._schemes:
            allowed = ", ".join(sorted(self._schemes))
            return PolicyDecision(
                False, f"protocol not allowed: {parsed.scheme or 'none'} (allowed: {allowed})"
            )

        hostname = (parsed.hostname or "").lower()
        if not hostname:
            return PolicyDecision(False, "url must have a hostname")
        if hostname in self._allowed_hostnames:
            return PolicyDecision(True)
        if hostname in METADATA_HOSTS:
            return PolicyDecision(False, f"hostname {hostname} is not allowed")

        try:
            addresses = await self._resolve(hostname)
        except OSError:
            logger.info("policy gate dns lookup failed", extra={"hostname": hostname})
            return PolicyDecision(False, f"dns lookup failed for hostname: {hostname}")

        if not addresses:
            return PolicyDecision(False, f"no addresses resolved for hostname: {hostname}")

        if not self._allow_private:
            for address in addresses:
                if is_disallowed_address(address):
                    return PolicyDecision(
                        False,
                        f"resolved address {address} for {hostname} is in a disallowed range",
                    )
        return PolicyDecision(True)

    async def _resolve(self, hostname: str) -> list[str]:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
        return sorted({info[4][0] for info in infos})
