"""
Caller-facing pipeline: endpoint -> navigation -> template filter ->
attributes -> aggregation, with a synthetic fallback.

``load_groups`` never raises the pipeline's own errors. A failed live run
returns synthetic groups built from the same attribute mapping, tagged
``synthetic`` and carrying the error as diagnostics.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .attributes import DEFAULT_MAX_WORKERS, AttributeResolver
from .cancellation import CancellationToken
from .endpoints import PROBE_TIMEOUT, EndpointResolver
from .errors import AuthRequiredError, NoUnitsFoundError, PIAFError, TransportError
from .models import (
    AssetNode,
    AttributeMapping,
    GroupRecord,
    LoadResult,
    Provenance,
    ServerConfig,
    UnitRecord,
)
from .navigator import HierarchyNavigator, filter_by_template
from .synthetic import SyntheticGenerator
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadOptions:
    max_groups: int = 10
    max_units_per_group: int = 20
    max_workers: int = DEFAULT_MAX_WORKERS
    probe_timeout: float = PROBE_TIMEOUT
    fallback_seed: Optional[int] = None


class DiscoveryRun:
    """
    State for one discovery run.

    The resolved base URL lives here and nowhere else, so concurrent runs for
    different configurations never share an endpoint.
    """

    def __init__(self, config: ServerConfig, mapping: AttributeMapping, transport: Transport,
                 cancel: Optional[CancellationToken] = None,
                 options: Optional[LoadOptions] = None,
                 owns_transport: bool = False):
        self.config = config
        self.mapping = mapping
        self.transport = transport
        self.cancel = cancel or CancellationToken()
        self.options = options or LoadOptions()
        self.base_url: Optional[str] = None
        self.owns_transport = owns_transport

    def navigator(self) -> HierarchyNavigator:
        if self.base_url is None:
            self.cancel.raise_if_cancelled()
            resolver = EndpointResolver(self.transport, self.options.probe_timeout)
            self.base_url = resolver.resolve(self.config.api_host_name, self.cancel)
        return HierarchyNavigator(self.transport, self.base_url, self.cancel)

    def find_groups(self, navigator: HierarchyNavigator) -> List[AssetNode]:
        nodes = navigator.find_target_children(
            self.config.server_name,
            self.config.database_name,
            self.config.parent_path,
            self.config.path_delimiter,
        )
        return nodes[:self.options.max_groups]

    def _unit_nodes(self, navigator: HierarchyNavigator,
                    groups: List[AssetNode]) -> List[Tuple[int, AssetNode]]:
        work = []
        for index, group in enumerate(groups):
            try:
                children = navigator.list_children(group)
            except AuthRequiredError:
                raise
            except TransportError as e:
                logger.warning(f"Skipping wellpad '{group.name}': {e}")
                continue
            units = filter_by_template(children, self.config.template_filter)
            if self.config.template_filter:
                logger.info(f"'{group.name}': {len(children)} -> {len(units)} wells "
                            f"by template '{self.config.template_filter}'")
            work.extend((index, node) for node in units[:self.options.max_units_per_group])
        return work

    def execute(self) -> List[GroupRecord]:
        """Run the live path. Raises PIAFError on any stage failure."""
        navigator = self.navigator()
        groups = self.find_groups(navigator)
        work = self._unit_nodes(navigator, groups)

        resolver = AttributeResolver(navigator, self.options.max_workers,
                                     join_on_abort=self.owns_transport)
        records = resolver.resolve_many([node for _, node in work], self.mapping)
        self.cancel.raise_if_cancelled()

        units_by_group: Dict[int, List[UnitRecord]] = {}
        for (index, _), record in zip(work, records):
            if record is not None:
                units_by_group.setdefault(index, []).append(record)

        result = []
        for index, node in enumerate(groups):
            units = units_by_group.get(index)
            if not units:
                logger.debug(f"Wellpad '{node.name}' has no resolved wells")
                continue
            result.append(GroupRecord(
                id=node.id or f"wellpad-{index}",
                name=node.name,
                location=node.path or node.name,
                units=tuple(units),
            ))
        if not result:
            raise NoUnitsFoundError("no wells resolved under the configured path",
                                    [g.name for g in groups])
        logger.info(f"Loaded {len(result)} wellpads with "
                    f"{sum(len(g.units) for g in result)} wells from PI AF")
        return result

    def validate(self) -> Dict[str, Any]:
        """Check endpoint, server, database and path without reading values."""
        navigator = self.navigator()
        server = navigator.find_server(self.config.server_name)
        database = navigator.find_database(server, self.config.database_name)
        groups = navigator.walk(database, self.config.path_segments())
        return {
            "endpoint": self.base_url,
            "server": server.name,
            "database": database.name,
            "groups": [g.name for g in groups],
        }


def load_groups(server_config: ServerConfig, mapping: AttributeMapping,
                cancel: Optional[CancellationToken] = None,
                transport: Optional[Transport] = None,
                options: Optional[LoadOptions] = None) -> LoadResult:
    """
    Load wellpads from PI AF, falling back to synthetic data.

    Args:
        server_config: Where to look in the AF hierarchy
        mapping: Canonical key -> site attribute name
        cancel: Optional cancellation token / deadline for the whole run
        transport: Transport to use; an HttpTransport is created (and closed) if omitted
        options: Limits, fan-out width and fallback seed

    Returns:
        LoadResult with provenance ``live`` or ``synthetic``
    """
    options = options or LoadOptions()
    owns_transport = transport is None
    if transport is None:
        transport = HttpTransport()

    run = DiscoveryRun(server_config, mapping, transport, cancel, options, owns_transport)
    try:
        return LoadResult(run.execute(), Provenance.LIVE)
    except PIAFError as e:
        logger.warning(f"Live load failed ({type(e).__name__}: {e}); using synthetic data")
        diagnostics = e
    finally:
        if owns_transport:
            transport.close()

    groups = SyntheticGenerator(options.fallback_seed).generate(mapping)
    return LoadResult(groups, Provenance.SYNTHETIC, diagnostics)
