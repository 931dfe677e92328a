"""
Tests for the Iceberg REST catalog client
"""

import httpx
import pytest

from r2sql.clients.catalog_client import IcebergCatalogClient, current_schema, encode_namespace
from r2sql.core.config import SessionConfig
from r2sql.core.exceptions import CatalogError

CONFIG = SessionConfig("acct", "bucket", "secret-token")
BASE_PATH = "/acct/bucket"


class CatalogServer:
    """Routes catalog requests by path and records them."""

    def __init__(self, routes, config_body=None):
        self.routes = routes
        self.config_body = config_body if config_body is not None else {"defaults": {}, "overrides": {}}
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.raw_path.decode().split("?")[0]
        if path == f"{BASE_PATH}/v1/config":
            return httpx.Response(200, json=self.config_body)
        if path in self.routes:
            status, body = self.routes[path]
            return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": {"message": "not found"}})


def catalog_for(server):
    return IcebergCatalogClient(CONFIG, transport=httpx.MockTransport(server))


class TestHelpers:
    def test_encode_namespace(self):
        """Test encoding multi-level namespaces for URL paths"""
        assert encode_namespace("default") == "default"
        assert encode_namespace("a.b") == "a%1Fb"

    def test_current_schema_by_id(self):
        """Test picking the schema named by current-schema-id"""
        metadata = {
            "current-schema-id": 1,
            "schemas": [{"schema-id": 0, "fields": []}, {"schema-id": 1, "fields": [{"name": "id"}]}],
        }
        assert current_schema(metadata)["schema-id"] == 1

    def test_current_schema_fallbacks(self):
        """Test schema fallbacks when no current id matches"""
        assert current_schema({"schemas": [{"schema-id": 0}]}) == {"schema-id": 0}
        assert current_schema({}) == {}


@pytest.mark.anyio
class TestCatalogClient:
    """Test catalog listing and metadata loading"""

    async def test_list_namespaces(self):
        """Test listing namespaces with auth and warehouse parameters"""
        server = CatalogServer({f"{BASE_PATH}/v1/namespaces": (200, {"namespaces": [["default"], ["a", "b"]]})})

        async with catalog_for(server) as catalog:
            assert await catalog.list_namespaces() == ["default", "a.b"]

        request = server.requests[-1]
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert request.url.params["warehouse"] == "acct_bucket"

    async def test_prefix_applied(self):
        """Test that the prefix from /v1/config is used once fetched"""
        server = CatalogServer(
            {f"{BASE_PATH}/v1/pfx/namespaces": (200, {"namespaces": [["default"]]})},
            config_body={"overrides": {"prefix": "pfx"}},
        )

        async with catalog_for(server) as catalog:
            assert await catalog.list_namespaces() == ["default"]
            await catalog.list_namespaces()

        config_calls = [r for r in server.requests if r.url.path.endswith("/v1/config")]
        assert len(config_calls) == 1

    async def test_list_tables_multi_level(self):
        """Test listing tables of a multi-level namespace"""
        server = CatalogServer(
            {
                f"{BASE_PATH}/v1/namespaces/a%1Fb/tables": (
                    200,
                    {"identifiers": [{"namespace": ["a", "b"], "name": "events"}, {"namespace": ["a", "b"], "name": "users"}]},
                )
            }
        )

        async with catalog_for(server) as catalog:
            assert await catalog.list_tables("a.b") == ["events", "users"]

    async def test_list_failure_raises(self):
        """Test that an HTTP error raises CatalogError"""
        server = CatalogServer({f"{BASE_PATH}/v1/namespaces": (500, {"error": "boom"})})

        async with catalog_for(server) as catalog:
            with pytest.raises(CatalogError, match="HTTP 500"):
                await catalog.list_namespaces()

    async def test_table_metadata(self):
        """Test loading table metadata"""
        metadata = {
            "format-version": 2,
            "current-schema-id": 0,
            "schemas": [{"schema-id": 0, "fields": [{"id": 1, "name": "id", "type": "long", "required": True}]}],
        }
        server = CatalogServer({f"{BASE_PATH}/v1/namespaces/default/tables/events": (200, {"metadata": metadata})})

        async with catalog_for(server) as catalog:
            table = await catalog.get_table_metadata("default", "events")

        assert table.qualified_name == "default.events"
        assert table.fields[0]["name"] == "id"
        assert table.full_metadata["format-version"] == 2

    async def test_missing_table(self):
        """Test that a 404 gives no metadata"""
        server = CatalogServer({})

        async with catalog_for(server) as catalog:
            assert await catalog.get_table_metadata("default", "missing") is None

    async def test_unreachable_catalog(self):
        """Test that connection errors raise CatalogError"""
        def handler(request):
            raise httpx.ConnectError("no route")

        async with IcebergCatalogClient(CONFIG, transport=httpx.MockTransport(handler)) as catalog:
            with pytest.raises(CatalogError, match="Catalog request failed"):
                await catalog.list_namespaces()
