"""
PI AF Wellpad Discovery Client

Discovers wellpads and wells in a PI Asset Framework database through the
PI Web API and reads their production attributes. Falls back to synthetic
data, clearly tagged, when the live system cannot be used.

Usage:
    from piaf import load_groups, load_server_config, load_attribute_mapping
    result = load_groups(load_server_config(), load_attribute_mapping())
"""

import logging

from .aggregation import GroupAggregates, aggregate, escalate, group_status
from .attributes import AttributeResolver, reduce_value
from .cancellation import CancellationToken
from .config import create_transport, load_attribute_mapping, load_server_config
from .endpoints import EndpointResolver, candidate_urls
from .errors import (
    AttributeUnavailableError,
    AuthRequiredError,
    EndpointUnreachableError,
    NavigationError,
    NoUnitsFoundError,
    NotFoundError,
    NotFoundScope,
    PIAFError,
    RunCancelledError,
    TransportError,
    TransportErrorKind,
    ValueParseError,
)
from .loader import DiscoveryRun, LoadOptions, load_groups
from .models import (
    AssetNode,
    AttributeMapping,
    AttributeReading,
    GroupRecord,
    LoadResult,
    Provenance,
    ReadingState,
    ServerConfig,
    UnitRecord,
)
from .navigator import HierarchyNavigator, filter_by_template
from .synthetic import SyntheticGenerator
from .transport import HttpTransport, Transport

# No output unless the application configures logging
logging.getLogger("piaf").addHandler(logging.NullHandler())

__all__ = [
    # Pipeline
    "load_groups",
    "DiscoveryRun",
    "LoadOptions",
    "CancellationToken",
    # Components
    "EndpointResolver",
    "candidate_urls",
    "Transport",
    "HttpTransport",
    "HierarchyNavigator",
    "filter_by_template",
    "AttributeResolver",
    "reduce_value",
    "SyntheticGenerator",
    "aggregate",
    "escalate",
    "group_status",
    # Configuration
    "load_server_config",
    "load_attribute_mapping",
    "create_transport",
    # Records
    "ServerConfig",
    "AttributeMapping",
    "AssetNode",
    "AttributeReading",
    "ReadingState",
    "UnitRecord",
    "GroupRecord",
    "GroupAggregates",
    "LoadResult",
    "Provenance",
    # Errors
    "PIAFError",
    "TransportError",
    "TransportErrorKind",
    "AuthRequiredError",
    "EndpointUnreachableError",
    "NavigationError",
    "NotFoundError",
    "NotFoundScope",
    "NoUnitsFoundError",
    "AttributeUnavailableError",
    "ValueParseError",
    "RunCancelledError",
]
