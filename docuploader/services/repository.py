"""
Document Repository - Single Responsibility: persist documents to the store.

Implements Repository Pattern for data access.
Supports grouped requests for efficient bulk imports.
"""
from typing import Any, Dict, Optional, Sequence

from ..models import DocumentInfo
from ..protocols import IDocumentRepository, IPropertiesProvider
from .api_client import Reference, StoreBatch, StoreClient
from .id_pool import IdPool

VERSIONS = "Versions"
BODY = "Body"


class DocumentRepository(IDocumentRepository):
    """
    Repository for creating documents with their content.

    Discrete mode issues dependent calls one document at a time; batch mode
    queues the same operations for many documents into one grouped request.
    """

    def __init__(
        self,
        client: StoreClient,
        properties_provider: IPropertiesProvider,
        applications: Optional[IdPool] = None,
    ):
        """
        Initialize repository.

        Args:
            client: Store client owned by the calling agent
            properties_provider: Builds the document record fields
            applications: Ids of associated (editor) applications for versions
        """
        self._client = client
        self._provider = properties_provider
        self._applications = applications or IdPool()

    @property
    def document_type(self) -> str:
        return self._provider.document_type

    def _application(self) -> Reference:
        return Reference(self._applications.random_id())

    # =========================================================================
    # Discrete Operations
    # =========================================================================

    async def create_document(self, info: DocumentInfo) -> Dict[str, Any]:
        """
        Create the document record.

        Returns:
            Created entity as returned by the store
        """
        return await (
            self._client.for_(self.document_type)
            .set(self._provider.get_properties(info))
            .insert()
        )

    async def fill_body(self, document: Dict[str, Any], info: DocumentInfo) -> None:
        """
        Create a version for the document and write its body.

        Documents without content get no version.
        """
        if info.is_empty:
            return

        version = await (
            self._client.for_(self.document_type)
            .key(document)
            .navigate_to(VERSIONS)
            .set({"AssociatedApplication": self._application()})
            .insert()
        )

        await (
            self._client.for_(self.document_type)
            .key(document)
            .navigate_to(VERSIONS)
            .key(version)
            .navigate_to(BODY)
            .set({"Value": info.body})
            .insert()
        )

    async def import_document(self, info: DocumentInfo) -> Dict[str, Any]:
        """Create one document and fill its body."""
        document = await self.create_document(info)
        await self.fill_body(document, info)
        return document

    # =========================================================================
    # Batch Operations
    # =========================================================================

    async def import_batch(self, infos: Sequence[DocumentInfo]) -> None:
        """
        Create documents with versions and bodies in a single grouped request.

        Body writes are queued for every document, including empty ones.
        """
        batch = self._client.batch()
        for index, info in enumerate(infos, 1):
            self.add_document_to_batch(batch, info, index)
        await batch.execute()

    def add_document_to_batch(self, batch: StoreBatch, info: DocumentInfo, index: int) -> None:
        """
        Queue document, version and body inserts for one document.

        Documents and versions get negative temporary ids (odd for documents,
        even for versions) so later sub-requests can address them.
        """
        doc_id = -2 * index + 1
        version_id = -2 * index

        create_doc = batch.add(self.prepare_document(info, doc_id))
        create_version = batch.add(self.prepare_version(doc_id, version_id), depends_on=[create_doc])
        batch.add(self.prepare_body(doc_id, version_id, info), depends_on=[create_version])

    def prepare_document(self, info: DocumentInfo, doc_id: int):
        """Prepare document insert for batch."""
        props = self._provider.get_properties(info)
        props["Id"] = doc_id
        return self._client.for_(self.document_type).set(props)

    def prepare_version(self, doc_id: int, version_id: int):
        """Prepare version insert for batch."""
        return (
            self._client.for_(self.document_type)
            .key(doc_id)
            .navigate_to(VERSIONS)
            .set({"Id": version_id, "Number": 1, "AssociatedApplication": self._application()})
        )

    def prepare_body(self, doc_id: int, version_id: int, info: DocumentInfo):
        """Prepare version body insert for batch."""
        return (
            self._client.for_(self.document_type)
            .key(doc_id)
            .navigate_to(VERSIONS)
            .key(version_id)
            .navigate_to(BODY)
            .set({"Value": info.body})
        )
