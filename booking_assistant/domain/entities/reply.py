from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Reply:
    text: str
    action: str
    meta: dict[str, Any] = field(default_factory=dict)
