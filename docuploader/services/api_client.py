"""
HTTP adapter for the document store.

Speaks an OData-style JSON protocol: entity sets are addressed by name,
related collections by navigation segments, and several dependent inserts
can be sent as one ``$batch`` request.
"""
from __future__ import annotations

import asyncio
import base64
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from ..errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reference:
    """Reference to another entity by id (serialized as ``{"Id": id}``)."""
    id: int


def serialize_value(value: Any) -> Any:
    """Convert a property value into its JSON form."""
    if isinstance(value, Reference):
        return {"Id": value.id}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, Mapping):
        return {k: serialize_value(v) for k, v in value.items()}
    return value


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except Exception:
        return response.text


def _innermost_error_message(detail: Any) -> Optional[str]:
    """Dig the most specific message out of an OData error payload."""
    if not isinstance(detail, dict):
        return None
    node = detail.get("error", detail)
    message = None
    while isinstance(node, dict):
        message = node.get("message", message)
        node = node.get("innererror") or node.get("internalexception")
    return message


@dataclass(frozen=True)
class ClientSettings:
    """Connection settings for the document store."""
    service_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 60.0
    need_return_result: bool = True
    max_retries: int = 3

    @classmethod
    def from_env(cls, **overrides) -> "ClientSettings":
        """Build settings from DOCUPLOADER_* environment variables."""
        raw_timeout = os.getenv("DOCUPLOADER_TIMEOUT", "60")
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ConfigurationError(f"DOCUPLOADER_TIMEOUT must be a number of seconds, got {raw_timeout!r}") from exc

        values: Dict[str, Any] = {
            "service_url": os.getenv("DOCUPLOADER_SERVICE_URL", ""),
            "username": os.getenv("DOCUPLOADER_USERNAME"),
            "password": os.getenv("DOCUPLOADER_PASSWORD"),
            "timeout": timeout,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class StoreClient:
    """
    Async client for the document store.

    Usage:
        async with StoreClient(settings) as client:
            doc = await client.for_("IDocuments").set({"Name": "a.txt"}).insert()
    """

    def __init__(self, settings: ClientSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def open(self) -> None:
        if self._client is not None:
            return
        auth = None
        if self._settings.username:
            auth = httpx.BasicAuth(self._settings.username, self._settings.password or "")
        prefer = "return=representation" if self._settings.need_return_result else "return=minimal"
        base_url = self._settings.service_url.rstrip("/") + "/"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=self._settings.timeout,
            auth=auth,
            headers={"Accept": "application/json", "Prefer": prefer},
            transport=self._transport,
        )

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Protocol primitives
    # =========================================================================

    def for_(self, entity_set: str) -> "EntityRequest":
        """Start a request against an entity set."""
        return EntityRequest(self, entity_set)

    def batch(self) -> "StoreBatch":
        """Start a grouped request."""
        return StoreBatch(self)

    async def ping(self) -> None:
        """Check that the service answers."""
        await self.get("$metadata")

    # =========================================================================
    # Transport
    # =========================================================================

    async def post(self, endpoint: str, json: Dict) -> Dict[str, Any]:
        response = await self._send("POST", endpoint, json=json)
        if not response.content:
            return {}
        return response.json()

    async def get(self, endpoint: str) -> httpx.Response:
        return await self._send("GET", endpoint)

    async def _send(self, method: str, endpoint: str, json: Optional[Dict] = None) -> httpx.Response:
        if not self._client:
            raise RuntimeError("StoreClient not initialized. Use 'async with' context.")

        max_retries = max(1, self._settings.max_retries)
        last_exception = None

        for attempt in range(max_retries):
            try:
                response = await self._client.request(method, endpoint, json=json)

                if response.status_code >= 500 and attempt < max_retries - 1:
                    logger.debug(f"{method} {endpoint} answered {response.status_code}, retrying")
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    detail = _error_detail(response)
                    message = _innermost_error_message(detail) or str(detail)
                    raise StoreError(
                        f"Store error {response.status_code} on {method} {endpoint}: {message}",
                        status_code=response.status_code,
                        detail=detail,
                    )

                return response
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise StoreError(f"{method} {endpoint} failed: {exc}") from exc

        if last_exception:
            raise StoreError(f"{method} {endpoint} failed: {last_exception}") from last_exception
        raise StoreError(f"Failed to {method} {endpoint} after {max_retries} attempts")


def _format_key(key: Union[int, str, Mapping[str, Any]]) -> str:
    if isinstance(key, Mapping):
        key = key["Id"]
    if isinstance(key, str):
        return f"'{key}'"
    return str(key)


class EntityRequest:
    """
    Fluent builder for one insert.

    ``client.for_("Docs").key(doc).navigate_to("Versions").set(values)``
    addresses ``Docs(<id>)/Versions`` with ``values`` as the body.
    """

    def __init__(self, client: StoreClient, entity_set: str):
        self._client = client
        self._path = entity_set
        self._values: Dict[str, Any] = {}

    def key(self, key: Union[int, str, Mapping[str, Any]]) -> "EntityRequest":
        """Select one entity. Accepts an id or an entity dict with ``Id``."""
        self._path = f"{self._path}({_format_key(key)})"
        return self

    def navigate_to(self, name: str) -> "EntityRequest":
        """Move to a related collection or property."""
        self._path = f"{self._path}/{name}"
        return self

    def set(self, values: Mapping[str, Any]) -> "EntityRequest":
        """Set field values for the insert."""
        self._values.update(values)
        return self

    @property
    def url(self) -> str:
        return self._path

    @property
    def body(self) -> Dict[str, Any]:
        return serialize_value(self._values)

    async def insert(self) -> Dict[str, Any]:
        """Send the insert and return the created entity (empty with minimal returns)."""
        return await self._client.post(self._path, json=self.body)


class StoreBatch:
    """
    Grouped request of dependent inserts, executed as one ``$batch`` call.

    Requests added with ``depends_on`` are applied by the store only after
    the referenced ones succeed. Any failed sub-request fails the batch.
    """

    def __init__(self, client: StoreClient):
        self._client = client
        self._requests: List[Dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self._requests)

    def add(self, request: EntityRequest, depends_on: Optional[List[str]] = None) -> str:
        """Queue an insert. Returns its request id."""
        request_id = str(len(self._requests) + 1)
        entry: Dict[str, Any] = {
            "id": request_id,
            "method": "POST",
            "url": request.url,
            "headers": {"content-type": "application/json"},
            "body": request.body,
        }
        if depends_on:
            entry["dependsOn"] = list(depends_on)
        self._requests.append(entry)
        return request_id

    @property
    def requests(self) -> List[Dict[str, Any]]:
        return list(self._requests)

    async def execute(self) -> List[Dict[str, Any]]:
        """Send all queued requests and return the sub-responses."""
        if not self._requests:
            return []
        payload = await self._client.post("$batch", json={"requests": self._requests})
        responses = payload.get("responses", [])
        for sub in responses:
            status = int(sub.get("status", 200))
            if status >= 400:
                detail = sub.get("body")
                message = _innermost_error_message(detail) or str(detail)
                raise StoreError(
                    f"Batch request {sub.get('id')} failed with {status}: {message}",
                    status_code=status,
                    detail=detail,
                )
        return responses
