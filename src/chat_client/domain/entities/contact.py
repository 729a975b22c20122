from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Contact:
    id: int
    username: str
    online: bool = False
