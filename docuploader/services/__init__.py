"""Services for docuploader."""
from .api_client import ClientSettings, EntityRequest, Reference, StoreBatch, StoreClient
from .client_factory import ClientFactory
from .id_pool import IdPool, IdPools
from .properties import (
    CashReportPropertiesProvider,
    DocumentPropertiesProvider,
    get_properties_provider,
)
from .repository import DocumentRepository

__all__ = [
    "ClientSettings",
    "StoreClient",
    "EntityRequest",
    "StoreBatch",
    "Reference",
    "ClientFactory",
    "IdPool",
    "IdPools",
    "DocumentPropertiesProvider",
    "CashReportPropertiesProvider",
    "get_properties_provider",
    "DocumentRepository",
]
