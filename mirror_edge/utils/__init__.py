from typing import Optional
from urllib.parse import urlsplit, urlunsplit


def strip_query(url: Optional[str]) -> str:
    """Drop query and fragment so URLs can be logged without their parameters."""
    if not url:
        return ""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
