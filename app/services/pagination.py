from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.config import MAX_PAGE_SIZE
from app.errors import InvalidInputError


@dataclass
class Page:
    """One page of a list query.

    ``has_more`` is a lower bound: it is true whenever the page came back full.
    """
    page: int
    page_size: int
    items: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_more(self) -> bool:
        return len(self.items) == self.page_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "has_more": self.has_more,
            "page": self.page,
            "page_size": self.page_size,
        }


def page_offset(page: int, page_size: int) -> int:
    if page < 1:
        raise InvalidInputError(f"page must be >= 1, got {page}")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidInputError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")
    return (page - 1) * page_size
