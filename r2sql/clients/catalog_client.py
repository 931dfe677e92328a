"""
Iceberg REST catalog client

Lists namespaces and tables of the R2 Data Catalog and loads table metadata.
The catalog may advertise a path prefix through ``/v1/config``; it is
fetched once and applied to every later request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

import httpx

from r2sql.core.config import SessionConfig
from r2sql.core.exceptions import CatalogError
from r2sql.core.types import TableMetadata

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
NAMESPACE_SEPARATOR = "%1F"


def encode_namespace(namespace: str) -> str:
    """Encode a dotted namespace as Iceberg REST multi-level path segment."""
    return NAMESPACE_SEPARATOR.join(quote(part, safe="") for part in namespace.split("."))


def current_schema(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the current schema out of Iceberg table metadata."""
    schemas = metadata.get("schemas")
    schema_id = metadata.get("current-schema-id")
    if isinstance(schemas, list):
        for schema in schemas:
            if isinstance(schema, dict) and schema_id is not None and schema.get("schema-id") == schema_id:
                return schema
    if isinstance(metadata.get("current-schema"), dict):
        return metadata["current-schema"]
    if isinstance(schemas, list) and schemas and isinstance(schemas[0], dict):
        return schemas[0]
    return {}


class IcebergCatalogClient:
    """
    Async client for an Iceberg REST catalog

    Example:
        async with IcebergCatalogClient(config) as catalog:
            for namespace in await catalog.list_namespaces():
                print(namespace, await catalog.list_tables(namespace))
    """

    def __init__(
        self,
        config: SessionConfig,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._prefix: Optional[str] = None
        self._configured = False
        self._client = httpx.AsyncClient(
            base_url=config.catalog_endpoint,
            headers={"Authorization": f"Bearer {config.api_token}"},
            params={"warehouse": config.warehouse},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "IcebergCatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _ensure_configured(self) -> None:
        if self._configured:
            return
        self._configured = True
        try:
            response = await self._client.get("/v1/config")
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Catalog config unavailable, using unprefixed paths: %s", e)
            return

        prefix = None
        for section in ("overrides", "defaults"):
            values = body.get(section) if isinstance(body, dict) else None
            if isinstance(values, dict) and values.get("prefix"):
                prefix = unquote(str(values["prefix"]))
                break
        if prefix and prefix != self.config.warehouse:
            self._prefix = prefix
        logger.debug("Catalog prefix: %s", self._prefix)

    def _path(self, path: str) -> str:
        if self._prefix:
            return f"/v1/{self._prefix}{path}"
        return f"/v1{path}"

    async def _get(self, path: str) -> httpx.Response:
        await self._ensure_configured()
        url = self._path(path)
        logger.debug("GET %s", url)
        try:
            return await self._client.get(url)
        except httpx.HTTPError as e:
            raise CatalogError(f"Catalog request failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        if response.is_error:
            raise CatalogError(f"Catalog returned HTTP {response.status_code}: {response.text[:200]}")
        try:
            body = response.json()
        except ValueError as e:
            raise CatalogError("Catalog returned invalid JSON") from e
        return body if isinstance(body, dict) else {}

    async def list_namespaces(self) -> List[str]:
        """
        List namespaces

        Returns:
            Namespace names in server order, levels joined with '.'

        Raises:
            CatalogError: If the catalog request fails
        """
        body = self._json(await self._get("/namespaces"))
        namespaces = []
        for entry in body.get("namespaces", []):
            if isinstance(entry, list):
                namespaces.append(".".join(str(part) for part in entry))
            else:
                namespaces.append(str(entry))
        return namespaces

    async def list_tables(self, namespace: str) -> List[str]:
        """
        List table names in a namespace

        Raises:
            CatalogError: If the catalog request fails
        """
        body = self._json(await self._get(f"/namespaces/{encode_namespace(namespace)}/tables"))
        return [
            str(identifier["name"])
            for identifier in body.get("identifiers", [])
            if isinstance(identifier, dict) and "name" in identifier
        ]

    async def get_table_metadata(self, namespace: str, table: str) -> Optional[TableMetadata]:
        """
        Load a table's metadata

        Returns:
            TableMetadata, or None if the table does not exist

        Raises:
            CatalogError: If the catalog request fails for any other reason
        """
        response = await self._get(
            f"/namespaces/{encode_namespace(namespace)}/tables/{quote(table, safe='')}"
        )
        if response.status_code == 404:
            return None
        body = self._json(response)
        metadata = body.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        return TableMetadata(
            namespace=namespace,
            name=table,
            schema=current_schema(metadata),
            full_metadata=metadata,
        )
