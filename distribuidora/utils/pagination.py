import math
from typing import Optional, Tuple

from distribuidora.config import Settings
from distribuidora.schemas.common import PaginationMeta


def clamp_page(page: Optional[int], limit: Optional[int], settings: Settings) -> Tuple[int, int]:
    """Página mínima 1; límite entre 1 y MAX_PAGE_LIMIT (por defecto DEFAULT_PAGE_LIMIT)."""
    page = max(1, page or 1)
    if limit is None:
        limit = settings.default_page_limit
    limit = max(1, min(limit, settings.max_page_limit))
    return page, limit


def build_pagination(total: int, page: int, limit: int) -> PaginationMeta:
    total_pages = max(1, math.ceil(total / limit))
    return PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
