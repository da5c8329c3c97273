from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Route(str, Enum):
    LOGIN = "login"
    HOME = "home"


@dataclass(frozen=True)
class AuthState:
    is_signed_in: bool
    token_hint: str | None = None
