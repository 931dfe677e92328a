"""
Namespace and table tree shown in the sidebar.

Nodes live in an arena keyed by stable ids; the flat display order is derived
from root order, expanded flags and child lists whenever it is needed.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from rich.text import Text

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    NAMESPACE = "namespace"
    TABLE = "table"


@dataclass
class SidebarNode:
    id: int
    kind: NodeKind
    name: str
    parent: Optional[int] = None
    expanded: bool = False
    children: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class SidebarRow:
    """One line of the flattened tree."""

    node_id: int
    kind: NodeKind
    name: str
    expanded: bool = False
    is_last: bool = False


class TableSource(Protocol):
    async def list_namespaces(self) -> List[str]: ...

    async def list_tables(self, namespace: str) -> List[str]: ...


class SidebarTree:
    """Expand/collapse state of the namespace tree plus the namespace -> tables index."""

    def __init__(self, catalog: TableSource):
        self._catalog = catalog
        self._nodes: Dict[int, SidebarNode] = {}
        self._roots: List[int] = []
        self._ids = itertools.count(1)
        self._inflight: Dict[str, asyncio.Future] = {}
        self.index: Dict[str, List[str]] = {}
        self.generation = 0
        self.cursor = 0
        self.current_namespace: Optional[str] = None
        self.message: Optional[str] = "Loading namespaces..."

    # --- structure ---

    def rows(self) -> List[SidebarRow]:
        rows = []
        for root_id in self._roots:
            root = self._nodes[root_id]
            rows.append(SidebarRow(root.id, root.kind, root.name, root.expanded))
            if root.expanded:
                for position, child_id in enumerate(root.children):
                    child = self._nodes[child_id]
                    is_last = position == len(root.children) - 1
                    rows.append(SidebarRow(child.id, child.kind, child.name, is_last=is_last))
        return rows

    def __len__(self) -> int:
        return len(self.rows())

    def node(self, node_id: int) -> Optional[SidebarNode]:
        return self._nodes.get(node_id)

    def node_at(self, index: int) -> Optional[SidebarNode]:
        rows = self.rows()
        if 0 <= index < len(rows):
            return self._nodes[rows[index].node_id]
        return None

    def position_of(self, node_id: int) -> int:
        for position, row in enumerate(self.rows()):
            if row.node_id == node_id:
                return position
        return -1

    @property
    def namespaces(self) -> List[str]:
        return [self._nodes[root_id].name for root_id in self._roots]

    def set_namespaces(self, namespaces: Sequence[str]) -> None:
        """Replace the tree with collapsed namespace nodes."""
        self._nodes.clear()
        self._roots = []
        for name in namespaces:
            node = SidebarNode(next(self._ids), NodeKind.NAMESPACE, name)
            self._nodes[node.id] = node
            self._roots.append(node.id)
        self.cursor = 0
        self.message = None if namespaces else "No namespaces found"

    # --- catalog access ---

    async def load_namespaces(self) -> bool:
        """
        Fetch namespaces and rebuild the tree

        Returns:
            False when a newer load superseded this one and its response was dropped
        """
        self.generation += 1
        generation = self.generation
        self.index.clear()
        self._inflight.clear()
        self.message = "Loading namespaces..."

        namespaces = await self._catalog.list_namespaces()
        if generation != self.generation:
            logger.debug("Dropping stale namespace listing (generation %d)", generation)
            return False
        self.set_namespaces(namespaces)
        return True

    async def tables_for(self, namespace: str) -> List[str]:
        """Tables of a namespace, from the index or from a shared in-flight request."""
        if namespace in self.index:
            return list(self.index[namespace])

        generation = self.generation
        task = self._inflight.get(namespace)
        if task is None:
            logger.debug("Listing tables for %s", namespace)
            task = asyncio.ensure_future(self._catalog.list_tables(namespace))
            self._inflight[namespace] = task
        try:
            tables = await asyncio.shield(task)
        finally:
            if task.done() and self._inflight.get(namespace) is task:
                del self._inflight[namespace]

        if generation == self.generation:
            self.index[namespace] = list(tables)
        return list(tables)

    async def prefetch(self) -> None:
        """Index every namespace's tables. Failures leave that namespace unindexed."""
        namespaces = self.namespaces
        results = await asyncio.gather(
            *(self.tables_for(namespace) for namespace in namespaces), return_exceptions=True
        )
        for namespace, result in zip(namespaces, results):
            if isinstance(result, Exception):
                logger.debug("Prefetch of %s failed: %s", namespace, result)

    # --- expand / collapse ---

    async def expand(self, node_id: int) -> bool:
        """
        Expand a namespace node, fetching its tables if they are not indexed

        Raises whatever the catalog raises; the node then stays collapsed.

        Returns:
            True if children were inserted
        """
        node = self._nodes.get(node_id)
        if node is None or node.kind is not NodeKind.NAMESPACE or node.expanded:
            return False

        generation = self.generation
        tables = await self.tables_for(node.name)
        if generation != self.generation or self._nodes.get(node_id) is not node or node.expanded:
            logger.debug("Dropping stale expansion of %s", node.name)
            return False

        for table in tables:
            child = SidebarNode(next(self._ids), NodeKind.TABLE, table, parent=node.id)
            self._nodes[child.id] = child
            node.children.append(child.id)
        node.expanded = True
        return True

    def collapse(self, node_id: int) -> bool:
        """Collapse a namespace node, removing exactly its child rows."""
        node = self._nodes.get(node_id)
        if node is None or node.kind is not NodeKind.NAMESPACE or not node.expanded:
            return False

        selected = self.node_at(self.cursor)
        for child_id in node.children:
            del self._nodes[child_id]
        node.children = []
        node.expanded = False
        if selected is None or selected.id not in self._nodes:
            self.cursor = self.position_of(node.id)
        else:
            self.cursor = self.position_of(selected.id)
        return True

    async def expand_at(self, index: int) -> bool:
        node = self.node_at(index)
        return await self.expand(node.id) if node else False

    def collapse_at(self, index: int) -> bool:
        node = self.node_at(index)
        return self.collapse(node.id) if node else False

    def select_table(self, node_id: int) -> Optional[Tuple[str, str]]:
        """Make a table's namespace current and return ``(namespace, table)``."""
        node = self._nodes.get(node_id)
        if node is None or node.kind is not NodeKind.TABLE:
            return None
        namespace = self._nodes[node.parent].name
        self.current_namespace = namespace
        return namespace, node.name

    # --- cursor ---

    def move(self, delta: int) -> None:
        count = len(self)
        if count:
            self.cursor = max(0, min(count - 1, self.cursor + delta))

    def to_top(self) -> None:
        self.cursor = 0

    def to_bottom(self) -> None:
        self.cursor = max(0, len(self) - 1)

    # --- display ---

    def render(self, show_cursor: bool = True) -> Text:
        if self.message:
            return Text(self.message, style="grey50")

        lines = []
        for position, row in enumerate(self.rows()):
            if row.kind is NodeKind.NAMESPACE:
                marker = "▾" if row.expanded else "▸"
                line = Text(f"{marker} {row.name}", style="bold #F38020")
            else:
                branch = "└─" if row.is_last else "├─"
                line = Text(f"  {branch} {row.name}", style="white")
            if show_cursor and position == self.cursor:
                line.stylize("reverse")
            lines.append(line)
        return Text("\n").join(lines)
