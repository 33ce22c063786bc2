"""URL builder utilities for notification templates."""

from ..config import get_frontend_url


def build_link(path: str) -> str:
    """Build an absolute frontend URL for a path like "/courses/123"."""
    base = get_frontend_url()
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base}{path}"
