"""
Pytest configuration and shared fixtures
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from r2sql.core.types import QueryResult, QueryStats, TableMetadata


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to only use asyncio backend."""
    return "asyncio"


@pytest.fixture
def sample_rows():
    """Sample query rows for testing"""
    return [
        {"id": 1, "name": "Alice", "city": "NYC", "active": True},
        {"id": 2, "name": "Bob", "city": "LA", "active": False},
        {"id": 3, "name": "Charlie", "city": None, "active": True},
    ]


@pytest.fixture
def sample_schema():
    return [
        {"name": "id", "type": "int64"},
        {"name": "name", "type": "string"},
        {"name": "city", "type": "string"},
        {"name": "active", "type": "boolean"},
    ]


@pytest.fixture
def sample_result(sample_rows, sample_schema):
    return QueryResult(
        rows=sample_rows,
        schema=sample_schema,
        headers={"content-type": "application/json", "cf-ray": "8abc123"},
        stats=QueryStats(row_count=3, r2_requests_count=2, files_scanned=1, bytes_scanned=2048, execution_time=12.5),
    )


@pytest.fixture
def sample_catalog():
    return {
        "default": ["events", "users"],
        "logs": ["requests"],
    }


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.stopped = False
        self.fired = False

    def stop(self):
        self.stopped = True


class FakePanel:
    """In-memory panel recording what the controller draws."""

    def __init__(self, width: int = 80):
        self.content = None
        self.label = ""
        self.visible = True
        self.scroll = 0
        self.width = width

    def set_content(self, content):
        self.content = content

    @property
    def plain(self) -> str:
        return self.content.plain if self.content is not None else ""

    def set_label(self, label):
        self.label = label

    def show_panel(self, visible):
        self.visible = visible

    def scroll_by(self, delta):
        self.scroll = max(0, self.scroll + delta)

    def scroll_to_line(self, line):
        self.scroll = line

    @property
    def content_width(self):
        return self.width


class FakeTextPanel(FakePanel):
    def __init__(self):
        super().__init__()
        self.value = ""
        self.read_only = False

    def get_value(self):
        return self.value

    def set_value(self, value):
        self.value = value

    def set_read_only(self, read_only):
        self.read_only = read_only


class FakeScreen:
    """Screen that collects spawned work and timers so tests can run them explicitly."""

    def __init__(self):
        self.sidebar = FakePanel()
        self.tab_bar = FakePanel()
        self.query_editor = FakeTextPanel()
        self.history_list = FakePanel()
        self.results = FakePanel()
        self.status_bar = FakePanel()
        self.search_box = FakeTextPanel()
        self.autocomplete = FakePanel()
        self.focused = None
        self.help_visible = False
        self.quit_called = False
        self.spawned = []
        self.timers: List[FakeTimer] = []

    def focus_panel(self, focus):
        self.focused = focus

    def show_help(self):
        self.help_visible = True

    def hide_help(self):
        self.help_visible = False

    def spawn(self, work):
        self.spawned.append(work)

    def schedule(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def quit(self):
        self.quit_called = True

    async def drain(self):
        """Await spawned work in order, including work spawned along the way."""
        while self.spawned:
            await self.spawned.pop(0)

    def fire_timers(self):
        """Fire every pending timer that was not stopped."""
        pending = [t for t in self.timers if not t.stopped and not t.fired]
        for timer in pending:
            timer.fired = True
            timer.callback()


class FakeCatalog:
    """Catalog collaborator backed by a dict of namespace -> tables."""

    def __init__(self, catalog: Dict[str, List[str]], metadata: Optional[Dict[str, TableMetadata]] = None):
        self.catalog = catalog
        self.metadata = metadata or {}
        self.table_calls: List[str] = []
        self.namespace_calls = 0
        self.fail_tables = set()
        self.fail_namespaces = False

    async def list_namespaces(self):
        self.namespace_calls += 1
        if self.fail_namespaces:
            raise RuntimeError("catalog unavailable")
        return list(self.catalog)

    async def list_tables(self, namespace):
        self.table_calls.append(namespace)
        if namespace in self.fail_tables:
            raise RuntimeError(f"cannot list {namespace}")
        return list(self.catalog.get(namespace, []))

    async def get_table_metadata(self, namespace, table):
        return self.metadata.get(f"{namespace}.{table}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        pass


class FakeQueryClient:
    """Query collaborator returning queued results in order."""

    def __init__(self, *results: QueryResult):
        self.results = list(results)
        self.queries: List[str] = []

    async def execute(self, sql):
        self.queries.append(sql)
        if self.results:
            return self.results.pop(0)
        return QueryResult(rows=[])

    async def aclose(self):
        pass


@pytest.fixture
def fake_screen():
    return FakeScreen()


@pytest.fixture
def fake_catalog(sample_catalog):
    metadata = {
        "default.events": TableMetadata(
            namespace="default",
            name="events",
            schema={
                "schema-id": 0,
                "fields": [
                    {"id": 1, "name": "id", "type": "long", "required": True},
                    {"id": 2, "name": "ts", "type": "timestamptz", "required": False},
                ],
            },
            full_metadata={
                "format-version": 2,
                "table-uuid": "abc-123",
                "location": "s3://bucket/default/events",
                "properties": {"owner": "analytics", "write.format.default": "parquet"},
            },
        )
    }
    return FakeCatalog(sample_catalog, metadata)


class GatedCatalog(FakeCatalog):
    """Catalog whose table listings wait until released."""

    def __init__(self, catalog):
        super().__init__(catalog)
        self.release = asyncio.Event()

    async def list_tables(self, namespace):
        self.table_calls.append(namespace)
        await self.release.wait()
        return list(self.catalog.get(namespace, []))


class MetadataGatedCatalog(FakeCatalog):
    """Catalog whose table metadata waits on a per-table gate when one is set."""

    def __init__(self, catalog, metadata):
        super().__init__(catalog, metadata)
        self.gates: Dict[str, asyncio.Event] = {}
        self.metadata_calls: List[str] = []

    async def get_table_metadata(self, namespace, table):
        name = f"{namespace}.{table}"
        self.metadata_calls.append(name)
        if name in self.gates:
            await self.gates[name].wait()
        return self.metadata.get(name)


@pytest.fixture
def catalog_factory():
    """Build a catalog collaborator from a namespace -> tables dict."""
    return FakeCatalog


@pytest.fixture
def gated_catalog(sample_catalog):
    return GatedCatalog(sample_catalog)


@pytest.fixture
def metadata_catalog(fake_catalog):
    metadata = dict(fake_catalog.metadata)
    metadata["default.users"] = TableMetadata(
        namespace="default",
        name="users",
        schema={"fields": [{"id": 1, "name": "email", "type": "string", "required": False}]},
        full_metadata={"format-version": 2, "table-uuid": "def-456"},
    )
    return MetadataGatedCatalog(fake_catalog.catalog, metadata)


@pytest.fixture
def query_client_factory():
    return FakeQueryClient
