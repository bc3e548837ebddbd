# quizcore/config/__init__.py
from __future__ import annotations

from .settings import DEFAULT_STREAK_TIERS, Settings

__all__ = ["DEFAULT_STREAK_TIERS", "Settings"]
