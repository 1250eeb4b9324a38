"""Entity storage and derived indexes."""

from src.repository.entities import EntityRepository
from src.repository.indexes import IndexMaintainer, RebuildResult
from src.repository.keys import conversation_key

__all__ = ["EntityRepository", "IndexMaintainer", "RebuildResult", "conversation_key"]
