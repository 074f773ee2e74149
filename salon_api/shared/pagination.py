"""Page/perPage handling shared by listing endpoints"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 200


@dataclass
class Pagination:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def meta(self, total: int) -> dict:
        return {
            "total": total,
            "page": self.page,
            "perPage": self.per_page,
            "totalPages": math.ceil(total / self.per_page) if total else 0,
        }


def parse_pagination(
    page: Optional[int] = None,
    per_page: Optional[int] = None,
    per: Optional[int] = None,
) -> Pagination:
    """Clamp page to >= 1 and perPage (alias ``per``) to [1, MAX_PER_PAGE]"""
    size = per_page if per_page is not None else per
    if size is None:
        size = DEFAULT_PER_PAGE
    size = max(1, min(MAX_PER_PAGE, size))
    return Pagination(page=max(1, page or 1), per_page=size)


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except ValueError:
        return None


def pagination_from_query(query_params: Mapping[str, str]) -> Pagination:
    """Same clamping as ``parse_pagination`` for use in cache key builders"""
    return parse_pagination(
        _int_or_none(query_params.get("page")),
        _int_or_none(query_params.get("perPage")),
        _int_or_none(query_params.get("per")),
    )
