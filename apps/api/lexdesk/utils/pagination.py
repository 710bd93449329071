"""Page/per_page pagination for list queries."""

from dataclasses import dataclass

from sqlalchemy.orm import Query

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass
class PaginationParams:
    """1-indexed page; per_page clamped to [1, MAX_PER_PAGE]."""
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    def __post_init__(self) -> None:
        self.page = max(1, self.page)
        self.per_page = min(max(1, self.per_page), MAX_PER_PAGE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def pages(self, total: int) -> int:
        return (total + self.per_page - 1) // self.per_page


def paginate_query(query: Query, pagination: PaginationParams) -> tuple[list, int]:
    """Returns (items, total_count)."""
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.per_page).all()
    return items, total
