"""Player catalog models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Player(BaseModel):
    id: str
    name: str
    position: Optional[str] = None
