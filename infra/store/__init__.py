"""
Persistence adapters for the progression engine's store contract.

Import from the module directly, e.g. `from infra.store.sql_store import SqlProgressStore`.
"""

__all__ = []
