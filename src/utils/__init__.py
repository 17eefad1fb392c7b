"""
Companion Store Utility Modules

File helpers shared by the preference store.
"""

from .atomic_write import atomic_write_json

__all__ = [
    "atomic_write_json",
]
