from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# refusal kinds; blueprints map each to an HTTP status
VALIDATION = "validation"
CONCURRENCY = "concurrency"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"
DUPLICATE = "duplicate"


@dataclass
class ConflictResult:
    allowed: bool
    reasons: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls) -> "ConflictResult":
        return cls(True, [])

    @classmethod
    def fail(cls, *reasons: str) -> "ConflictResult":
        return cls(False, list(reasons))


@dataclass
class Outcome:
    """
    Result of a mutating core operation.

    `ok` True  -> `data` holds the operation payload.
    `ok` False -> `kind` is one of the refusal kinds above and `message`
                  is safe to show to the end user.
    """

    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    kind: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, **data) -> "Outcome":
        return cls(True, data)

    @classmethod
    def refuse(cls, kind: str, message: str) -> "Outcome":
        return cls(False, {}, kind, message)
