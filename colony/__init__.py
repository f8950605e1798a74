# __init__.py
from __future__ import annotations

from .mind.runtime import Admission, RuntimeApp
from .strategy.loader import load_profile

__all__ = ["Admission", "RuntimeApp", "load_profile"]
