"""
Tests for the namespace/table sidebar tree
"""

import asyncio

import pytest

from r2sql.core.sidebar import NodeKind, SidebarTree


def names(tree):
    return [row.name for row in tree.rows()]


@pytest.fixture
async def tree(fake_catalog):
    tree = SidebarTree(fake_catalog)
    await tree.load_namespaces()
    return tree


@pytest.mark.anyio
class TestSidebarTree:
    """Test expand/collapse on the sidebar arena"""

    async def test_namespaces_start_collapsed(self, tree):
        """Test that namespaces load collapsed"""
        assert names(tree) == ["default", "logs"]
        assert all(row.kind is NodeKind.NAMESPACE and not row.expanded for row in tree.rows())
        assert tree.message is None

    async def test_expand_splices_tables_in_order(self, tree):
        """Test that expanding inserts tables under the namespace"""
        await tree.expand_at(0)

        assert names(tree) == ["default", "events", "users", "logs"]
        rows = tree.rows()
        assert rows[0].expanded
        assert rows[1].kind is NodeKind.TABLE
        assert not rows[1].is_last
        assert rows[2].is_last

    async def test_collapse_restores_length(self, tree):
        """Test that collapsing removes the inserted rows"""
        before = names(tree)
        await tree.expand_at(1)
        assert len(tree) == 3

        tree.collapse_at(1)
        assert names(tree) == before

    async def test_expand_collapse_sequences(self, tree):
        """Test repeated expand and collapse sequences"""
        baseline = len(tree)
        for _ in range(3):
            await tree.expand_at(0)
            logs_index = tree.position_of(tree.rows()[-1].node_id)
            await tree.expand_at(logs_index)
            assert len(tree) == baseline + 3

            tree.collapse_at(0)
            assert names(tree) == ["default", "logs", "requests"]
            tree.collapse_at(tree.namespaces.index("logs"))
            assert len(tree) == baseline

    async def test_expand_uses_index(self, tree, fake_catalog):
        """Test that expanding again reuses indexed tables"""
        await tree.expand_at(0)
        tree.collapse_at(0)
        await tree.expand_at(0)

        assert fake_catalog.table_calls == ["default"]

    async def test_expand_failure_leaves_node_collapsed(self, tree, fake_catalog):
        """Test that a failed listing leaves the namespace collapsed"""
        fake_catalog.fail_tables.add("logs")

        with pytest.raises(RuntimeError):
            await tree.expand_at(1)

        assert names(tree) == ["default", "logs"]
        assert not tree.rows()[1].expanded
        assert "logs" not in tree.index

    async def test_expanding_table_row_is_noop(self, tree):
        """Test that table rows cannot be expanded or collapsed"""
        await tree.expand_at(0)
        assert not await tree.expand_at(1)
        assert not tree.collapse_at(1)
        assert len(tree) == 4

    async def test_collapse_keeps_cursor_on_namespace(self, tree):
        """Test that collapsing moves the cursor to the namespace"""
        await tree.expand_at(0)
        tree.cursor = 2
        tree.collapse_at(0)
        assert tree.cursor == 0

    async def test_collapse_above_cursor_follows_selection(self, tree):
        """Test that the cursor follows its row when rows above collapse"""
        await tree.expand_at(0)
        tree.cursor = 3
        tree.collapse_at(0)
        assert tree.node_at(tree.cursor).name == "logs"

    async def test_select_table(self, tree):
        """Test selecting a table sets the current namespace"""
        await tree.expand_at(0)
        node = tree.node_at(2)

        assert tree.select_table(node.id) == ("default", "users")
        assert tree.current_namespace == "default"
        assert tree.select_table(tree.node_at(0).id) is None

    async def test_cursor_bounds(self, tree):
        """Test that the cursor stays within the rows"""
        tree.move(-5)
        assert tree.cursor == 0
        tree.move(10)
        assert tree.cursor == 1
        tree.to_top()
        assert tree.cursor == 0
        tree.to_bottom()
        assert tree.cursor == 1

    async def test_render(self, tree):
        """Test the tree drawing"""
        await tree.expand_at(0)
        lines = tree.render().plain.splitlines()

        assert lines == ["▾ default", "  ├─ events", "  └─ users", "▸ logs"]

    async def test_empty_catalog(self, catalog_factory):
        """Test the message for a catalog without namespaces"""
        tree = SidebarTree(catalog_factory({}))
        await tree.load_namespaces()

        assert len(tree) == 0
        assert tree.render().plain == "No namespaces found"


@pytest.mark.anyio
class TestPrefetch:
    """Test background indexing racing user actions"""

    async def test_prefetch_indexes_every_namespace(self, tree, sample_catalog):
        """Test that prefetch indexes every namespace"""
        await tree.prefetch()
        assert tree.index == sample_catalog

    async def test_prefetch_failure_leaves_namespace_unindexed(self, tree, fake_catalog):
        """Test that a failed prefetch leaves only that namespace unindexed"""
        fake_catalog.fail_tables.add("logs")
        await tree.prefetch()

        assert "default" in tree.index
        assert "logs" not in tree.index

    async def test_expand_during_prefetch_shares_request(self, gated_catalog):
        """Test that an expand during prefetch shares the listing request"""
        catalog = gated_catalog
        tree = SidebarTree(catalog)
        await tree.load_namespaces()

        prefetch = asyncio.ensure_future(tree.prefetch())
        await asyncio.sleep(0)
        expand = asyncio.ensure_future(tree.expand_at(0))
        await asyncio.sleep(0)
        catalog.release.set()
        await asyncio.gather(prefetch, expand)

        assert catalog.table_calls.count("default") == 1
        assert names(tree) == ["default", "events", "users", "logs"]

    async def test_stale_prefetch_is_dropped(self, gated_catalog):
        """Test that prefetch results are dropped after a reload"""
        catalog = gated_catalog
        tree = SidebarTree(catalog)
        await tree.load_namespaces()

        prefetch = asyncio.ensure_future(tree.prefetch())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        catalog.catalog = {"fresh": ["t"]}
        await tree.load_namespaces()
        catalog.release.set()
        await prefetch

        assert names(tree) == ["fresh"]
        assert tree.index == {}
