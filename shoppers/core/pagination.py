import math
from dataclasses import dataclass


def _to_int(v, default):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


@dataclass
class Page:
    page: int = 1
    limit: int = 20

    def __post_init__(self):
        self.page = max(_to_int(self.page, 1), 1)
        self.limit = min(max(_to_int(self.limit, 20), 1), 100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "pages": math.ceil(total / self.limit) if total else 0,
        }
