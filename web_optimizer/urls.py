"""Target URL normalization.

User input like "example.com" becomes "https://example.com". Anything that
still does not parse as an absolute http(s) URL is rejected before any
network call is made.
"""

import re
from urllib.parse import quote, urlparse

from .errors import InvalidUrl

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)


def normalize_target_url(raw: str, default_scheme: str = "https") -> str:
    """
    Normalize user input to an absolute http(s) URL.

    >>> normalize_target_url("example.com")
    'https://example.com'

    Raises:
        InvalidUrl: empty input, a non-http scheme, or no usable hostname.
    """
    s = (raw or "").strip()
    if not s:
        raise InvalidUrl("No URL given.")

    if not _SCHEME_RE.match(s):
        s = f"{default_scheme}://{s}"

    if not is_absolute_http_url(s):
        raise InvalidUrl(f"Not an absolute http(s) URL: {raw!r}")
    return s


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
        host = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return False
    return not any(ch.isspace() for ch in parsed.netloc)


def hostname_of(url: str) -> str:
    """Bare hostname for filenames and footers ('https://www.a.com/x' -> 'www.a.com')."""
    return (urlparse(url).hostname or "").lower()


def ascii_hostname(url: str) -> str:
    """Hostname in its IDNA form, safe for HTTP headers ('例子.测试' -> 'xn--fsqu00a.xn--0zwm56d')."""
    host = hostname_of(url)
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError:
        return quote(host, safe=".-")
