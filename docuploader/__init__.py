"""
docuploader - Concurrent import of folder trees into a document store.

One agent per first-level subfolder, each splitting its files into staggered
portions that are uploaded sequentially or in parallel, per document or in
grouped batches. A rejected document never stops the rest of the run.

Usage:
    from docuploader import DocumentImporter, UploadSettings, UploadOrder
    from docuploader.services import ClientFactory, ClientSettings, DocumentRepository
    from docuploader.services import get_properties_provider

    provider = get_properties_provider("document")
    importer = DocumentImporter(
        ClientFactory(ClientSettings("https://rx.example.com/Integration/odata")),
        lambda client: DocumentRepository(client, provider),
    )
    settings = UploadSettings(portion_size=100, batch_size=10, upload_order=UploadOrder.PARALLEL)
    result = await importer.import_from("/data/reports", settings)
    print(result.imported_count, result.exit_code)
"""
from .errors import CLIError, ConfigurationError, InvalidPathError, StoreError, UploaderError
from .models import DocumentInfo, UploadOrder, UploadSettings
from .orchestrator import DocumentImporter, ImportProcess, ImportResult, ImportStatus

__version__ = "0.1.0"
__all__ = [
    # Main
    "DocumentImporter",
    "ImportProcess",
    "ImportResult",
    "ImportStatus",
    # Models
    "UploadSettings",
    "UploadOrder",
    "DocumentInfo",
    # Errors
    "UploaderError",
    "ConfigurationError",
    "InvalidPathError",
    "StoreError",
    "CLIError",
]
