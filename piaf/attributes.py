"""
Attribute Resolver: turn an element plus an attribute mapping into a UnitRecord.

For every configured canonical key the resolver looks the display name up in
the element's declared attributes, fetches the current value and reduces it
to a float. Problems with one key are recorded on that key's reading and never
stop the other keys or the other units.
"""

import logging
import math
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .cancellation import CancellationToken
from .errors import (
    AttributeUnavailableError,
    AuthRequiredError,
    TransportError,
    ValueParseError,
)
from .models import (
    AssetNode,
    AttributeDescriptor,
    AttributeMapping,
    AttributeReading,
    AttributeValue,
    ReadingState,
    UnitRecord,
)
from .navigator import HierarchyNavigator

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
_POLL_INTERVAL = 0.1


def reduce_value(raw: Any, _nested: bool = False) -> Optional[float]:
    """
    Reduce a raw PI value to a float.

    Returns None when there is no value at all. Raises ValueParseError when a
    value is present but is not numeric. An object carrying its own ``Value``
    field (e.g. an enumeration state) is unwrapped exactly once.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueParseError(raw, "Boolean values are not numeric readings")
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            raise ValueParseError(raw)
        return float(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ValueParseError(raw, "Empty string value")
        try:
            number = float(text)
        except ValueError:
            raise ValueParseError(raw) from None
        if not math.isfinite(number):
            raise ValueParseError(raw)
        return number
    if isinstance(raw, dict):
        if _nested:
            raise ValueParseError(raw, "Value is nested more than one level deep")
        if "Value" not in raw:
            raise ValueParseError(raw, f"Object value has no 'Value' field (Name: {raw.get('Name')})")
        return reduce_value(raw["Value"], _nested=True)
    raise ValueParseError(raw)


class _DescriptorIndex:
    """Name -> descriptor lookup, exact match before case-insensitive."""

    def __init__(self, descriptors: Sequence[AttributeDescriptor]):
        self._exact: Dict[str, AttributeDescriptor] = {}
        self._folded: Dict[str, AttributeDescriptor] = {}
        for descriptor in descriptors:
            self._exact.setdefault(descriptor.name, descriptor)
            self._folded.setdefault(descriptor.name.casefold(), descriptor)

    def lookup(self, element: str, display_name: str) -> AttributeDescriptor:
        descriptor = self._exact.get(display_name) or self._folded.get(display_name.casefold())
        if descriptor is None:
            raise AttributeUnavailableError(element, display_name)
        return descriptor


class AttributeResolver:
    """Resolves mapped attributes for units, fanning out over a thread pool."""

    def __init__(self, navigator: HierarchyNavigator, max_workers: int = DEFAULT_MAX_WORKERS,
                 join_on_abort: bool = False):
        self.navigator = navigator
        self.max_workers = max(1, max_workers)
        # Wait for running workers when a batch aborts
        self.join_on_abort = join_on_abort

    @property
    def cancel(self) -> Optional[CancellationToken]:
        return self.navigator.cancel

    def _fetch(self, key: str, display_name: str,
               descriptor: AttributeDescriptor) -> AttributeReading:
        link = descriptor.value_link or f"streams/{descriptor.id}/value"
        try:
            payload = self.navigator.transport.get(self.navigator.base_url, link, self.cancel)
        except AuthRequiredError:
            raise
        except TransportError as e:
            logger.warning(f"Value fetch failed for '{display_name}': {e}")
            return AttributeReading(key, display_name, ReadingState.FETCH_FAILED, errors=(str(e),))

        value = AttributeValue.from_payload(payload)
        meta = dict(good=value.good, questionable=value.questionable,
                    errors=value.errors, timestamp=value.timestamp)
        try:
            number = reduce_value(value.raw_value)
        except ValueParseError as e:
            logger.debug(f"'{display_name}': {e}")
            return AttributeReading(key, display_name, ReadingState.UNPARSEABLE, **meta)
        if number is None:
            return AttributeReading(key, display_name, ReadingState.NO_VALUE, **meta)
        if value.good is False:
            logger.debug(f"'{display_name}' has bad quality, keeping value {number}")
        return AttributeReading(key, display_name, ReadingState.MEASURED, value=number, **meta)

    def resolve(self, node: AssetNode, mapping: AttributeMapping) -> UnitRecord:
        """Build the UnitRecord for one element."""
        index = _DescriptorIndex(self.navigator.list_attributes(node))
        readings: Dict[str, AttributeReading] = {}
        for key, display_name in mapping.items():
            try:
                descriptor = index.lookup(node.name, display_name)
            except AttributeUnavailableError as e:
                logger.debug(str(e))
                readings[key] = AttributeReading(key, display_name, ReadingState.NOT_FOUND)
                continue
            readings[key] = self._fetch(key, display_name, descriptor)

        timestamps = [r.timestamp for r in readings.values() if r.timestamp is not None]
        unit = UnitRecord(
            id=node.id or f"well-{node.name}",
            name=node.name,
            readings=readings,
            last_updated=max(timestamps) if timestamps else datetime.now(timezone.utc),
        )
        missing = unit.unavailable_keys()
        if missing:
            states = ", ".join(f"{k}={readings[k].state.value}" for k in missing)
            logger.info(f"'{node.name}': {len(missing)} of {len(readings)} attributes unavailable ({states})")
        return unit

    def _resolve_or_skip(self, node: AssetNode, mapping: AttributeMapping) -> Optional[UnitRecord]:
        try:
            return self.resolve(node, mapping)
        except AuthRequiredError:
            raise
        except TransportError as e:
            logger.warning(f"Skipping '{node.name}': {e}")
            return None

    def resolve_many(self, nodes: Sequence[AssetNode],
                     mapping: AttributeMapping) -> List[Optional[UnitRecord]]:
        """
        Resolve units concurrently.

        The result is aligned with ``nodes``; a unit whose attribute listing
        failed is None. Cancellation and auth failures abort the whole batch;
        queued units are dropped and running ones are abandoned unless
        ``join_on_abort`` is set.
        """
        if not nodes:
            return []
        results: List[Optional[UnitRecord]] = [None] * len(nodes)
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(nodes)),
                                      thread_name_prefix="piaf-unit")
        futures = {executor.submit(self._resolve_or_skip, node, mapping): i
                   for i, node in enumerate(nodes)}
        try:
            pending = set(futures)
            while pending:
                if self.cancel is not None:
                    self.cancel.raise_if_cancelled()
                done, pending = wait(pending, timeout=_POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    results[futures[future]] = future.result()
        except BaseException:
            executor.shutdown(wait=self.join_on_abort, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return results
