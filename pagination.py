"""
Page/limit normalization and aggregation pagination.

Query parameters arrive as raw strings. Anything missing or non-numeric falls
back to the default, then both values are clamped so a page is never empty
by construction: page >= 1 and 1 <= limit <= MAX_PAGE_LIMIT. page is also
capped so the resulting $skip fits in a 64-bit integer.
"""

import logging
import math
from typing import List, Optional, Tuple

from pymongo.collection import Collection

from config import settings
from database import to_str_id

logger = logging.getLogger(__name__)

# Largest $skip MongoDB accepts
MAX_SKIP = 2 ** 63 - 1


def parse_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def max_page(limit: int) -> int:
    return MAX_SKIP // limit + 1


def page_params(page: Optional[str], limit: Optional[str]) -> Tuple[int, int]:
    page_num = max(parse_int(page, 1), 1)
    limit_num = parse_int(limit, settings.DEFAULT_PAGE_LIMIT)
    limit_num = min(max(limit_num, 1), settings.MAX_PAGE_LIMIT)
    page_num = min(page_num, max_page(limit_num))
    return page_num, limit_num


def paginate(collection: Collection, pipeline: List[dict], page: int, limit: int) -> dict:
    """Run one page of an aggregation plus its total count.

    The caller's pipeline is never modified; the count and page stages are
    appended to fresh lists.
    """
    limit = max(limit, 1)
    page = min(max(page, 1), max_page(limit))

    counted = list(collection.aggregate(pipeline + [{"$count": "total"}]))
    total = counted[0]["total"] if counted else 0

    skip = (page - 1) * limit
    docs = list(collection.aggregate(pipeline + [{"$skip": skip}, {"$limit": limit}]))

    total_pages = math.ceil(total / limit)
    has_prev = page > 1
    has_next = page < total_pages
    logger.debug(f"Paginated {collection.name}: page {page}/{total_pages} ({total} docs)")
    return {
        "docs": to_str_id(docs),
        "totalDocs": total,
        "limit": limit,
        "page": page,
        "totalPages": total_pages,
        "pagingCounter": skip + 1,
        "hasPrevPage": has_prev,
        "hasNextPage": has_next,
        "prevPage": page - 1 if has_prev else None,
        "nextPage": page + 1 if has_next else None,
    }
