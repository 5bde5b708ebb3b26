"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
The orchestrator only depends on these; services implement them.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol, Sequence, runtime_checkable

from .models import DocumentInfo


@runtime_checkable
class IStoreClient(Protocol):
    """Interface for an agent's connection to the document store."""

    async def aclose(self) -> None:
        """Release the connection."""
        ...


@runtime_checkable
class IClientFactory(Protocol):
    """Interface for acquiring store clients."""

    async def create(self) -> Optional[IStoreClient]:
        """Connected client, or None if the store cannot be reached."""
        ...


@runtime_checkable
class IPropertiesProvider(Protocol):
    """Interface for document record fields."""

    document_type: str

    def get_properties(self, info: DocumentInfo) -> Dict[str, Any]:
        """Ordered field name -> value mapping for the document record."""
        ...


class IDocumentRepository(ABC):
    """Interface for document storage (Repository Pattern)."""

    @abstractmethod
    async def import_document(self, info: DocumentInfo) -> Any:
        """Create one document and its content with individual requests."""
        pass

    @abstractmethod
    async def import_batch(self, infos: Sequence[DocumentInfo]) -> None:
        """Create several documents with one grouped request."""
        pass
