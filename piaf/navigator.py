"""
Hierarchy Navigator and Template Filter.

Walks asset servers -> databases -> elements -> child elements by name. Every
"not found" failure carries the names that did exist at that level, so an
operator can fix the configuration without a separate browse session.
"""

import logging
from typing import List, Optional, Sequence

from .cancellation import CancellationToken
from .errors import NavigationError, NotFoundError, NotFoundScope
from .models import AssetNode, AttributeDescriptor, NodeKind
from .transport import Transport

logger = logging.getLogger(__name__)

MAX_DEPTH = 10

_CHILD_ENDPOINTS = {
    NodeKind.SERVER: ("assetservers/{id}/assetdatabases", NodeKind.DATABASE),
    NodeKind.DATABASE: ("assetdatabases/{id}/elements", NodeKind.ELEMENT),
    NodeKind.ELEMENT: ("elements/{id}/elements", NodeKind.ELEMENT),
}


def match_name(nodes: Sequence[AssetNode], name: str) -> Optional[AssetNode]:
    """Exact name first, then case-insensitive. No partial matches."""
    for node in nodes:
        if node.name == name:
            return node
    folded = name.casefold()
    for node in nodes:
        if node.name.casefold() == folded:
            return node
    return None


def filter_by_template(nodes: Sequence[AssetNode],
                       template_name: Optional[str]) -> List[AssetNode]:
    """Keep nodes whose template matches (case-insensitive); no filter keeps all."""
    if not template_name or not template_name.strip():
        return list(nodes)
    wanted = template_name.strip().casefold()
    return [n for n in nodes if n.type_template and n.type_template.casefold() == wanted]


class HierarchyNavigator:
    """Lists and walks AF nodes through an injected transport."""

    def __init__(self, transport: Transport, base_url: str,
                 cancel: Optional[CancellationToken] = None):
        self.transport = transport
        self.base_url = base_url
        self.cancel = cancel

    def _list(self, path: str, kind: NodeKind) -> List[AssetNode]:
        data = self.transport.get(self.base_url, path, self.cancel)
        items = data.get("Items")
        if not isinstance(items, list):
            logger.debug(f"No Items in response for {path}")
            return []
        return [AssetNode.from_item(item, kind) for item in items if isinstance(item, dict)]

    def list_asset_servers(self) -> List[AssetNode]:
        return self._list("assetservers", NodeKind.SERVER)

    def list_children(self, node: AssetNode) -> List[AssetNode]:
        template, child_kind = _CHILD_ENDPOINTS[node.kind]
        children = self._list(template.format(id=node.id), child_kind)
        logger.debug(f"Found {len(children)} children under '{node.name}'")
        return children

    def list_databases(self, server: AssetNode) -> List[AssetNode]:
        return self.list_children(server)

    def list_root_elements(self, database: AssetNode) -> List[AssetNode]:
        return self.list_children(database)

    def list_attributes(self, element: AssetNode) -> List[AttributeDescriptor]:
        if element.kind is not NodeKind.ELEMENT:
            raise ValueError(f"Attributes are only listed for elements, not {element.kind.value}")
        data = self.transport.get(self.base_url, f"elements/{element.id}/attributes", self.cancel)
        items = data.get("Items")
        if not isinstance(items, list):
            return []
        return [AttributeDescriptor.from_item(item) for item in items if isinstance(item, dict)]

    def find_server(self, server_name: str) -> AssetNode:
        servers = self.list_asset_servers()
        server = match_name(servers, server_name)
        if server is None:
            raise NotFoundError(NotFoundScope.SERVER, server_name, [s.name for s in servers])
        logger.info(f"Found AF server '{server.name}'")
        return server

    def find_database(self, server: AssetNode, database_name: str) -> AssetNode:
        databases = self.list_databases(server)
        database = match_name(databases, database_name)
        if database is None:
            raise NotFoundError(NotFoundScope.DATABASE, database_name,
                                [d.name for d in databases])
        logger.info(f"Found AF database '{database.name}'")
        return database

    def walk(self, database: AssetNode, segments: Sequence[str]) -> List[AssetNode]:
        """Follow path segments from the database root; return the last node's children."""
        if len(segments) > MAX_DEPTH:
            raise NavigationError(
                f"path exceeds maximum depth of {MAX_DEPTH} segments ({len(segments)} given)"
            )
        current = self.list_root_elements(database)
        for segment in segments:
            node = match_name(current, segment)
            if node is None:
                raise NotFoundError(NotFoundScope.PATH_SEGMENT, segment, [n.name for n in current])
            logger.debug(f"Path segment '{segment}' -> '{node.name}'")
            current = self.list_children(node)
        return current

    def find_target_children(self, server_name: str, database_name: str, path: str = "",
                             delimiter: str = "\\") -> List[AssetNode]:
        """Resolve server, database and element path; return the target's children."""
        server = self.find_server(server_name)
        database = self.find_database(server, database_name)
        segments = [s.strip() for s in (path or "").split(delimiter) if s.strip()]
        nodes = self.walk(database, segments)
        logger.info(f"Path '{path}' resolved to {len(nodes)} elements")
        return nodes
