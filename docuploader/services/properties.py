"""
Document property providers.

A provider turns a DocumentInfo into the ordered field mapping stamped onto
the created document record. The store layer serializes values; providers
only produce ``str``, ``int``, ``float``, ``datetime``, Enum or Reference.
"""
import random
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import ConfigurationError
from ..models import DocumentInfo
from .api_client import Reference
from .id_pool import IdPools

# Upper bound of non-negative 32-bit ints, matching the store's Int32 fields.
MAX_INT = 2 ** 31 - 1


class DocumentPropertiesProvider:
    """Base provider: only the document name."""

    document_type = "IOfficialDocuments"

    def __init__(self, pools: Optional[IdPools] = None):
        self._pools = pools or IdPools()

    def get_properties(self, info: DocumentInfo) -> Dict[str, Any]:
        return {"Name": info.relative_path}


class StoreType(Enum):
    """Store chains a cash report can belong to."""
    Magnit = 0
    MagnitKosmetik = 1
    MagnitExtra = 2


class CashReportPropertiesProvider(DocumentPropertiesProvider):
    """Cash accounting reports filled with random test values."""

    document_type = "ICashAccountingCashReports"

    def __init__(self, pools: Optional[IdPools] = None, rng: Optional[random.Random] = None):
        super().__init__(pools)
        self._rng = rng or random.Random()

    def _random_date(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=self._rng.randint(0, MAX_INT))

    def get_properties(self, info: DocumentInfo) -> Dict[str, Any]:
        props = super().get_properties(info)
        props.update({
            "SalesCount": self._rng.randint(0, MAX_INT),
            "EmployeeCount": self._rng.randint(0, MAX_INT),
            "Address": str(uuid.uuid4()),
            "ReportCreatedDate": self._random_date(),
            "OpeningDate": self._random_date(),
            "StoreCode": str(uuid.uuid4()),
            "EfficiencyRatio": self._rng.random(),
            "StoreType": self._rng.choice(list(StoreType)),
            "City": Reference(self._pools.cities.random_id()),
            "RetailOutletManager": Reference(self._pools.employees.random_id()),
            "Supervisor": Reference(self._pools.employees.random_id()),
            "Region": Reference(self._pools.regions.random_id()),
            "ChiefCashier": Reference(self._pools.employees.random_id()),
        })
        return props


PROVIDERS = {
    "document": DocumentPropertiesProvider,
    "cash-report": CashReportPropertiesProvider,
}


def get_properties_provider(kind: str, pools: Optional[IdPools] = None) -> DocumentPropertiesProvider:
    """Provider registered under ``kind``."""
    try:
        provider_cls = PROVIDERS[kind]
    except KeyError:
        raise ConfigurationError(f"Unknown document type {kind!r} (expected one of: {', '.join(PROVIDERS)})")
    return provider_cls(pools)
