"""
URL helpers for storage endpoints.
"""

from urllib.parse import urlparse


def is_absolute_url(value):
    """
    Check that a string is a well-formed absolute URL.

    Only the shape is checked: a scheme and a network location must be
    present. Reachability and the scheme itself are not validated, so
    ``http://`` endpoints are accepted as well as ``https://``.
    """
    if not isinstance(value, str) or not value:
        return False
    if any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    if not parsed.scheme or not parsed.netloc:
        return False
    try:
        # Raises ValueError for an out-of-range or non-numeric port
        parsed.port
    except ValueError:
        return False
    return bool(parsed.hostname)
