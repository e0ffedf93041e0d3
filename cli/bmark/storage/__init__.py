"""Storage Module - Persistence of the model catalog, prompts and results."""

from .base import ModelStore
from .memory import MemoryStore
from .supabase import SupabaseStore

__all__ = [
    "ModelStore",
    "MemoryStore",
    "SupabaseStore",
]
