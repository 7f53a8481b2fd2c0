"""
Privacy helpers.

Raw client IPs never reach logs, audit events or analytics; only a salted
hash does.
"""
import hashlib
from typing import Optional

from core.config import settings


def hash_ip(ip: Optional[str], salt: Optional[str] = None) -> Optional[str]:
    """Salted SHA-256 prefix of a client IP (None when the IP is unknown)."""
    if not ip:
        return None
    salt = settings.IP_HASH_SALT if salt is None else salt
    return hashlib.sha256(f"{salt}:{ip.strip()}".encode()).hexdigest()[:16]


def client_ip(request) -> Optional[str]:
    """Best-effort client IP from a Starlette request (first X-Forwarded-For hop wins)."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None
