"""Page bookkeeping shared by the list queries."""

from dataclasses import dataclass


@dataclass
class Page:
    """Position of a page inside a result set."""

    total_docs: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total_docs + self.limit - 1) // self.limit

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1
