"""Signed-in user profile."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserProfile:
    display_name: Optional[str]
    image_url: Optional[str]
