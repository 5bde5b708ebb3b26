"""Tests for docuploader services."""
import base64
import json
import random
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from docuploader.errors import ConfigurationError, StoreError
from docuploader.models import DocumentInfo
from docuploader.protocols import IPropertiesProvider
from docuploader.services.api_client import ClientSettings, Reference, StoreClient, serialize_value
from docuploader.services.client_factory import ClientFactory
from docuploader.services.id_pool import IdPool, IdPools
from docuploader.services.properties import (
    CashReportPropertiesProvider,
    DocumentPropertiesProvider,
    StoreType,
    get_properties_provider,
)
from docuploader.services.repository import DocumentRepository

SERVICE_URL = "http://store.test/Integration/odata"


class StoreStub:
    """Mock transport handler that records requests and returns canned responses."""

    def __init__(self, responses=None):
        self.requests = []
        self._responses = list(responses or [])
        self._next_id = 100

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body, request))
        if self._responses:
            status, payload = self._responses.pop(0)
            return httpx.Response(status, json=payload)
        self._next_id += 1
        return httpx.Response(201, json={"Id": self._next_id})

    @property
    def paths(self):
        return [path for _, path, _, _ in self.requests]


def _client(stub, **settings):
    return StoreClient(ClientSettings(SERVICE_URL, **settings), transport=httpx.MockTransport(stub))


def _info(name="a.txt", body=b"abc"):
    return DocumentInfo(name=name.rsplit(".", 1)[0], relative_path=f"sub/{name}", extension="txt", body=body)


class TestSerializeValue:
    def test_values(self):
        when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert serialize_value(Reference(7)) == {"Id": 7}
        assert serialize_value(when) == "2024-05-01T12:00:00+00:00"
        assert serialize_value(b"hi") == base64.b64encode(b"hi").decode()
        assert serialize_value(StoreType.MagnitExtra) == "MagnitExtra"
        assert serialize_value({"A": {"B": Reference(1)}}) == {"A": {"B": {"Id": 1}}}
        assert serialize_value(3.5) == 3.5


class TestStoreClient:
    @pytest.mark.asyncio
    async def test_insert_composes_url_and_body(self):
        stub = StoreStub()
        async with _client(stub, username="admin", password="secret") as client:
            created = await (
                client.for_("IDocs").key({"Id": 5}).navigate_to("Versions").key(9).navigate_to("Body")
                .set({"Value": b"xyz"}).insert()
            )

        method, path, body, request = stub.requests[0]
        assert method == "POST"
        assert path == "/Integration/odata/IDocs(5)/Versions(9)/Body"
        assert body == {"Value": base64.b64encode(b"xyz").decode()}
        assert request.headers["Prefer"] == "return=representation"
        assert request.headers["Authorization"].startswith("Basic ")
        assert created == {"Id": 101}

    @pytest.mark.asyncio
    async def test_minimal_return(self):
        stub = StoreStub()
        async with _client(stub, need_return_result=False) as client:
            await client.for_("IDocs").set({"Name": "x"}).insert()
        assert stub.requests[0][3].headers["Prefer"] == "return=minimal"

    @pytest.mark.asyncio
    async def test_client_error_raises_innermost_message(self):
        error = {"error": {"message": "Outer", "innererror": {"message": "Name is too long"}}}
        stub = StoreStub([(400, error)])
        async with _client(stub) as client:
            with pytest.raises(StoreError, match="Name is too long") as exc_info:
                await client.for_("IDocs").set({"Name": "x"}).insert()
        assert exc_info.value.status_code == 400
        assert len(stub.requests) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self, monkeypatch):
        monkeypatch.setattr("docuploader.services.api_client.asyncio.sleep", AsyncMock())
        stub = StoreStub([(503, {"error": {"message": "busy"}}), (201, {"Id": 1})])
        async with _client(stub) as client:
            created = await client.for_("IDocs").set({"Name": "x"}).insert()
        assert created == {"Id": 1}
        assert len(stub.requests) == 2

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, monkeypatch):
        monkeypatch.setattr("docuploader.services.api_client.asyncio.sleep", AsyncMock())

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = StoreClient(ClientSettings(SERVICE_URL, max_retries=2), transport=httpx.MockTransport(refuse))
        async with client:
            with pytest.raises(StoreError) as exc_info:
                await client.ping()
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_not_opened(self):
        client = StoreClient(ClientSettings(SERVICE_URL))
        with pytest.raises(RuntimeError, match="not initialized"):
            await client.ping()

    @pytest.mark.asyncio
    async def test_batch_format(self):
        stub = StoreStub([(200, {"responses": [{"id": "1", "status": 201}, {"id": "2", "status": 201}]})])
        async with _client(stub) as client:
            batch = client.batch()
            first = batch.add(client.for_("IDocs").set({"Id": -1, "Name": "a"}))
            batch.add(client.for_("IDocs").key(-1).navigate_to("Versions").set({"Id": -2}), depends_on=[first])
            await batch.execute()

        method, path, body, _ = stub.requests[0]
        assert path == "/Integration/odata/$batch"
        assert [r["url"] for r in body["requests"]] == ["IDocs", "IDocs(-1)/Versions"]
        assert body["requests"][1]["dependsOn"] == ["1"]
        assert "dependsOn" not in body["requests"][0]

    @pytest.mark.asyncio
    async def test_batch_sub_request_failure(self):
        responses = {"responses": [
            {"id": "1", "status": 201},
            {"id": "2", "status": 400, "body": {"error": {"message": "Bad version"}}},
        ]}
        stub = StoreStub([(200, responses)])
        async with _client(stub) as client:
            batch = client.batch()
            batch.add(client.for_("IDocs").set({"Name": "a"}))
            batch.add(client.for_("IDocs").key(-1).navigate_to("Versions").set({}))
            with pytest.raises(StoreError, match="Bad version"):
                await batch.execute()

    @pytest.mark.asyncio
    async def test_empty_batch_sends_nothing(self):
        stub = StoreStub()
        async with _client(stub) as client:
            assert await client.batch().execute() == []
        assert stub.requests == []


class TestClientSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DOCUPLOADER_SERVICE_URL", SERVICE_URL)
        monkeypatch.setenv("DOCUPLOADER_USERNAME", "admin")
        monkeypatch.setenv("DOCUPLOADER_TIMEOUT", "15")
        monkeypatch.delenv("DOCUPLOADER_PASSWORD", raising=False)

        settings = ClientSettings.from_env(password="pw", need_return_result=False, username=None)

        assert settings.service_url == SERVICE_URL
        assert settings.username == "admin"
        assert settings.password == "pw"
        assert settings.timeout == 15.0
        assert settings.need_return_result is False

    def test_from_env_rejects_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("DOCUPLOADER_TIMEOUT", "a minute")
        with pytest.raises(ConfigurationError, match="DOCUPLOADER_TIMEOUT"):
            ClientSettings.from_env(service_url=SERVICE_URL)


class TestClientFactory:
    @pytest.mark.asyncio
    async def test_create_connected_client(self):
        stub = StoreStub([(200, {})])
        factory = ClientFactory(ClientSettings(SERVICE_URL), transport=httpx.MockTransport(stub))

        client = await factory.create()

        assert isinstance(client, StoreClient)
        assert stub.paths == ["/Integration/odata/$metadata"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_create_returns_none_when_rejected(self):
        stub = StoreStub([(401, {"error": {"message": "Unauthorized"}})])
        factory = ClientFactory(ClientSettings(SERVICE_URL), transport=httpx.MockTransport(stub))
        assert await factory.create() is None

    @pytest.mark.asyncio
    async def test_create_without_url(self):
        assert await ClientFactory(ClientSettings("")).create() is None


class TestDocumentRepository:
    @pytest.mark.asyncio
    async def test_import_document_creates_version_and_body(self):
        stub = StoreStub()
        async with _client(stub) as client:
            repository = DocumentRepository(client, DocumentPropertiesProvider(), IdPool([42]))
            document = await repository.import_document(_info())

        assert document == {"Id": 101}
        assert stub.paths == [
            "/Integration/odata/IOfficialDocuments",
            "/Integration/odata/IOfficialDocuments(101)/Versions",
            "/Integration/odata/IOfficialDocuments(101)/Versions(102)/Body",
        ]
        assert stub.requests[0][2] == {"Name": "sub/a.txt"}
        assert stub.requests[1][2] == {"AssociatedApplication": {"Id": 42}}
        assert stub.requests[2][2] == {"Value": base64.b64encode(b"abc").decode()}

    @pytest.mark.asyncio
    async def test_empty_document_gets_no_version(self):
        stub = StoreStub()
        async with _client(stub) as client:
            repository = DocumentRepository(client, DocumentPropertiesProvider())
            await repository.import_document(_info(body=b""))
        assert stub.paths == ["/Integration/odata/IOfficialDocuments"]

    @pytest.mark.asyncio
    async def test_import_batch_queues_three_operations_per_document(self):
        stub = StoreStub([(200, {"responses": []})])
        async with _client(stub) as client:
            repository = DocumentRepository(client, DocumentPropertiesProvider(), IdPool([7]))
            await repository.import_batch([_info("a.txt"), _info("b.txt", body=b"")])

        assert len(stub.requests) == 1
        requests = stub.requests[0][2]["requests"]
        assert [r["url"] for r in requests] == [
            "IOfficialDocuments",
            "IOfficialDocuments(-1)/Versions",
            "IOfficialDocuments(-1)/Versions(-2)/Body",
            "IOfficialDocuments",
            "IOfficialDocuments(-3)/Versions",
            "IOfficialDocuments(-3)/Versions(-4)/Body",
        ]
        assert requests[0]["body"] == {"Name": "sub/a.txt", "Id": -1}
        assert requests[1]["body"] == {"Id": -2, "Number": 1, "AssociatedApplication": {"Id": 7}}
        # empty bodies are still written in batch mode
        assert requests[5]["body"] == {"Value": ""}
        assert requests[2]["dependsOn"] == [requests[1]["id"]]


    @pytest.mark.asyncio
    async def test_accepts_any_properties_provider(self):
        class InvoiceProvider:
            document_type = "IInvoices"

            def get_properties(self, info):
                return {"Name": info.name, "Kind": "invoice"}

        assert isinstance(InvoiceProvider(), IPropertiesProvider)
        assert isinstance(CashReportPropertiesProvider(), IPropertiesProvider)

        stub = StoreStub()
        async with _client(stub) as client:
            await DocumentRepository(client, InvoiceProvider()).import_document(_info(body=b""))

        assert stub.paths == ["/Integration/odata/IInvoices"]
        assert stub.requests[0][2] == {"Name": "a", "Kind": "invoice"}


class TestIdPool:
    def test_parse_ids_and_ranges(self):
        pool = IdPool.parse("5, 1..3,, 9")
        assert pool.ids == [5, 9, 1, 2, 3]

    def test_parse_empty(self):
        assert len(IdPool.parse(None)) == 0
        assert len(IdPool.parse("")) == 0

    @pytest.mark.parametrize("raw", ["a", "1..", "5..2", "1..2..3"])
    def test_parse_invalid(self, raw):
        with pytest.raises(ConfigurationError):
            IdPool.parse(raw)

    def test_random_id(self):
        assert IdPool().random_id() == 0
        assert IdPool([11]).random_id() == 11
        pool = IdPool([1, 2, 3], rng=random.Random(3))
        assert {pool.random_id() for _ in range(200)} == {1, 2, 3}

    def test_pools_from_env(self, monkeypatch):
        monkeypatch.setenv("DOCUPLOADER_CITY_IDS", "1..4")
        monkeypatch.setenv("DOCUPLOADER_EMPLOYEE_IDS", "10,20")
        monkeypatch.delenv("DOCUPLOADER_REGION_IDS", raising=False)
        monkeypatch.delenv("DOCUPLOADER_APPLICATION_IDS", raising=False)

        pools = IdPools.from_env()

        assert pools.cities.ids == [1, 2, 3, 4]
        assert pools.employees.ids == [10, 20]
        assert len(pools.regions) == 0


class TestPropertiesProviders:
    def test_base_provider(self):
        assert DocumentPropertiesProvider().get_properties(_info()) == {"Name": "sub/a.txt"}

    def test_cash_report_provider(self):
        pools = IdPools(cities=IdPool([3]), employees=IdPool([8]), regions=IdPool([5]))
        provider = CashReportPropertiesProvider(pools, rng=random.Random(1))

        props = provider.get_properties(_info())

        assert provider.document_type == "ICashAccountingCashReports"
        assert list(props)[0] == "Name"
        assert props["Name"] == "sub/a.txt"
        assert props["City"] == Reference(3)
        assert props["Region"] == Reference(5)
        assert props["Supervisor"] == props["ChiefCashier"] == Reference(8)
        assert isinstance(props["StoreType"], StoreType)
        assert isinstance(props["ReportCreatedDate"], datetime)
        assert 0 <= props["EfficiencyRatio"] < 1

    def test_lookup(self):
        assert isinstance(get_properties_provider("cash-report"), CashReportPropertiesProvider)
        with pytest.raises(ConfigurationError, match="Unknown document type"):
            get_properties_provider("invoice")
