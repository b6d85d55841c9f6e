from __future__ import annotations

from typing import Any, Dict

from .query import TodoPage


# PUBLIC_INTERFACE
def pagination_envelope(page: TodoPage) -> Dict[str, Any]:
    """
    Build the pagination block for list responses.

    Args:
        page: The listing result.

    Returns:
        Dict with keys: total, total_pages, current_page, limit.
    """
    return {
        "total": int(page.total),
        "total_pages": int(page.total_pages),
        "current_page": int(page.page),
        "limit": int(page.limit),
    }
