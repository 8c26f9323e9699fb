"""Policy for promoter image URLs that the server fetches or hands to Chromium"""

import logging
from typing import Optional, Sequence
from urllib.parse import urlsplit

from .. import config

logger = logging.getLogger(__name__)


def host_allowed(host: str, allowed_hosts: Sequence[str]) -> bool:
    host = host.lower().rstrip(".")
    for entry in allowed_hosts:
        if entry.startswith("."):
            if host.endswith(entry) or host == entry[1:]:
                return True
        elif host == entry:
            return True
    return False


def allowed_image_url(url: Optional[str], allowed_hosts: Optional[Sequence[str]] = None) -> Optional[str]:
    """Return url when it is https on an allowed host, otherwise None"""
    if not url:
        return None
    if allowed_hosts is None:
        allowed_hosts = config.CONTRACT_IMAGE_ALLOWED_HOSTS

    try:
        parts = urlsplit(url)
    except ValueError:
        logger.warning(f"⚠️ Ignoring unparseable image URL: {url[:200]}")
        return None

    host = parts.hostname
    if parts.scheme != "https" or not host or parts.username or parts.password:
        logger.warning(f"⚠️ Ignoring image URL that is not plain https: {url[:200]}")
        return None
    if not host_allowed(host, allowed_hosts):
        logger.warning(f"⚠️ Ignoring image URL on a host outside CONTRACT_IMAGE_ALLOWED_HOSTS: {host}")
        return None
    return url
