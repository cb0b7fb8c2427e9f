from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ParsedOk:
    data: Any


@dataclass(frozen=True)
class ParsedError:
    raw: str
    reason: str


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: ParsedOk | ParsedError

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300 and isinstance(self.body, ParsedOk)

    def json_or_empty(self) -> dict[str, Any]:
        """Body as a dict; parse failures and non-object bodies count as empty."""
        if isinstance(self.body, ParsedOk) and isinstance(self.body.data, dict):
            return self.body.data
        return {}
