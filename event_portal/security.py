from typing import Optional
from urllib.parse import urlparse

from flask_wtf.csrf import CSRFProtect

csrf = CSRFProtect()


def is_safe_next(target: Optional[str]) -> bool:
    """Only same-site relative paths are accepted as post-login redirects."""
    if not target:
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc and target.startswith("/") and not target.startswith("//")
