# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import re
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlparse

from durablefunctions.internal.shared import INSECURE_PROTOCOLS, SECURE_PROTOCOLS

# The host emits between 1 and 7 fraction digits; fromisoformat wants exactly 6 before 3.11
_FRACTION_DIGITS = re.compile(r"\.(\d+)")


def to_iso_timestamp(value: datetime) -> str:
    """Formats a datetime the way the host expects in query strings.

    Naive values are assumed to be UTC. The result always has millisecond
    precision and a trailing ``Z``, e.g. ``2018-10-16T21:51:59.000Z``.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_DIGITS.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    return datetime.fromisoformat(text)


def append_query(url: str, key: str, value: Any) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{key}={value}"


def is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme.lower() in SECURE_PROTOCOLS + INSECURE_PROTOCOLS and bool(parsed.netloc)


def get_origin(url: str) -> str:
    # urlparse lowercases the scheme, so slice the original text
    parsed = urlparse(url)
    return url[:len(parsed.scheme) + len("://") + len(parsed.netloc)]


def get_request_url(request: Any) -> Optional[str]:
    """Returns the URL of an inbound trigger request, if it carries a usable one.

    Accepts ``azure.functions.HttpRequest`` objects, any object with a ``url``
    attribute, or a mapping with a ``url`` key.
    """
    if request is None:
        return None
    if isinstance(request, dict):
        url = request.get("url")
    else:
        url = getattr(request, "url", None)
    return url if is_http_url(url) else None
