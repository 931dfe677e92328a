"""
R2 SQL query client

Sends SQL text verbatim to the R2 SQL HTTP API and normalises the several
response shapes the service has used into a QueryResult.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from r2sql.core.config import SessionConfig
from r2sql.core.types import QueryResult, QueryStats

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


def _error_message(response: httpx.Response) -> str:
    """Best human-readable error text from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return str(errors[0]["message"])
        if body.get("error"):
            return str(body["error"])
    return response.text or f"HTTP {response.status_code}"


def _stats(metrics: Optional[Dict[str, Any]], row_count: int) -> QueryStats:
    metrics = metrics or {}
    bytes_scanned = metrics.get("bytes_scanned")
    if bytes_scanned is None:
        bytes_scanned = metrics.get("bytes_read")
    execution_time = metrics.get("query_time_ms")
    if execution_time is None:
        execution_time = metrics.get("executionTime")
    return QueryStats(
        row_count=row_count,
        r2_requests_count=metrics.get("r2_requests_count"),
        files_scanned=metrics.get("files_scanned"),
        bytes_scanned=bytes_scanned,
        execution_time=execution_time,
    )


def parse_query_response(body: Any, headers: Optional[Dict[str, str]] = None) -> QueryResult:
    """
    Normalise a successful response body

    Args:
        body: Decoded JSON body
        headers: Response headers to attach to the result

    Returns:
        QueryResult with rows, schema and stats; an error result for unknown shapes
    """
    rows: Optional[List[Dict[str, Any]]] = None
    schema = None
    metrics = None

    if isinstance(body, list):
        rows = body
    elif isinstance(body, dict):
        result = body.get("result")
        if isinstance(result, dict) and isinstance(result.get("rows"), list):
            rows = result["rows"]
            schema = result.get("schema")
            metrics = result.get("metrics") or body.get("meta")
        elif isinstance(result, list):
            rows = result
        elif isinstance(result, dict) and isinstance(result.get("data"), list):
            rows = result["data"]
            metrics = body.get("meta")
        elif isinstance(body.get("data"), list):
            rows = body["data"]
            metrics = body.get("meta")

    if rows is None:
        return QueryResult.failure("Query failed: unexpected response format")

    rows = [row if isinstance(row, dict) else {"value": row} for row in rows]
    return QueryResult(
        rows=rows,
        schema=schema if isinstance(schema, list) else None,
        headers=headers,
        stats=_stats(metrics, len(rows)),
    )


class R2SQLClient:
    """
    Async client for the R2 SQL query endpoint

    Example:
        async with R2SQLClient(config) as client:
            result = await client.execute("SELECT * FROM ns.events LIMIT 10")
    """

    def __init__(
        self,
        config: SessionConfig,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {config.api_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "R2SQLClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute(self, sql: str) -> QueryResult:
        """
        Run a query

        Args:
            sql: Query text, sent as-is

        Returns:
            QueryResult; failures are reported through ``error``, never raised
        """
        logger.debug("Executing query: %s", sql)
        try:
            response = await self._client.post(self.config.query_endpoint, json={"query": sql})
        except httpx.HTTPError as e:
            logger.debug("Query request failed", exc_info=True)
            return QueryResult.failure(f"Query failed: {e}")

        if response.is_error:
            message = _error_message(response)
            logger.debug("Query rejected with HTTP %d: %s", response.status_code, message)
            return QueryResult.failure(f"Query failed: {message}")

        try:
            body = response.json()
        except ValueError:
            return QueryResult.failure("Query failed: response was not valid JSON")

        return parse_query_response(body, dict(response.headers))
