"""Resolve the call monitor host from a configured router address."""

from __future__ import annotations

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"(https?://)([^:/]*)(:\d*)?(.*)?")


def host_from_url(value: str) -> Optional[str]:
    """
    Return the host part of a router URL such as ``http://192.168.178.1:49000/``.

    A bare host name or address is returned unchanged. None is returned when
    a URL has no host.
    """
    value = value.strip()
    if not value:
        return None
    match = _URL_RE.match(value)
    if match is None:
        if "://" in value:
            logger.error("Cannot get host from router URL: %s", value)
            return None
        return value
    host = match.group(2)
    if not host:
        logger.error("Cannot get host from router URL: %s", value)
        return None
    return host


__all__ = ["host_from_url"]
