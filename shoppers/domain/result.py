from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Result:
    """Outcome of an explicit pre-write check."""
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "Result":
        return cls(True)

    @classmethod
    def failure(cls, error: str) -> "Result":
        return cls(False, error)

    def __bool__(self) -> bool:
        return self.ok
