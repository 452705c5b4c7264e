"""
Data model shared by the live discovery path and the synthetic generator.

Both paths build the same record types, so a consumer can only tell them apart
through the provenance tag on ``LoadResult``.
"""

import re
from collections import abc
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import PIAFError

CORE_KEYS = ("oilRate", "liquidRate", "waterCut", "espFrequency", "planTarget")
EXTENDED_KEYS = (
    "gasRate", "tubingPressure", "casingPressure", "temperature",
    "flowlinePressure", "chokeSize", "gasLiftRate", "pumpSpeed", "motorAmps",
    "vibration", "runtime", "shutinTime", "wellheadPressure", "bottomholePressure",
)
PRESSURE_KEYS = (
    "tubingPressure", "casingPressure", "flowlinePressure",
    "wellheadPressure", "bottomholePressure",
)

# Unit health thresholds (percent)
DEVIATION_ALERT = 15.0
DEVIATION_WARNING = 10.0
WATER_CUT_ALERT = 25.0
WATER_CUT_WARNING = 20.0

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a PI Web API timestamp (ISO 8601, up to 7 fractional digits)."""
    if not value or not isinstance(value, str):
        return None
    text = _FRACTION_RE.sub(r".\1", value.strip()).replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _isoformat_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _text(value: Any) -> str:
    """Payload field as a string; missing and empty values become ''."""
    if value is None or value == "":
        return ""
    return value if isinstance(value, str) else str(value)


def _flag(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _links(item: Dict[str, Any]) -> Dict[str, str]:
    links = item.get("Links")
    if not isinstance(links, dict):
        return {}
    return {str(rel): _text(href) for rel, href in links.items() if _text(href)}


@dataclass(frozen=True)
class ServerConfig:
    """Where to look: PI Web API host, AF server, database and element path."""
    server_name: str
    api_host_name: str
    database_name: str
    parent_path: str = ""
    template_filter: Optional[str] = None
    path_delimiter: str = "\\"

    def path_segments(self) -> List[str]:
        return [s.strip() for s in self.parent_path.split(self.path_delimiter) if s.strip()]


class AttributeMapping(abc.Mapping):
    """
    Ordered canonical key -> site attribute display name.

    Keys configured with an empty or missing display name are absent: they are
    not resolved and never fall back to a guessed name.
    """

    def __init__(self, entries: Optional[Mapping[str, Optional[str]]] = None):
        self._entries: Dict[str, str] = {}
        seen: Dict[str, str] = {}
        for key, display_name in (entries or {}).items():
            if display_name is None or not str(display_name).strip():
                continue
            display_name = str(display_name).strip()
            if display_name in seen:
                raise ValueError(
                    f"Display name '{display_name}' is mapped by both "
                    f"'{seen[display_name]}' and '{key}'"
                )
            seen[display_name] = key
            self._entries[key] = display_name

    @classmethod
    def default(cls) -> "AttributeMapping":
        return cls({
            "oilRate": "Oil_Rate",
            "liquidRate": "Liquid_Rate",
            "waterCut": "Water_Cut",
            "espFrequency": "ESP_Frequency",
            "planTarget": "Plan_Target",
        })

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def display_name(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._entries)

    def __repr__(self) -> str:
        return f"AttributeMapping({self._entries!r})"


class NodeKind(str, Enum):
    SERVER = "server"
    DATABASE = "database"
    ELEMENT = "element"


@dataclass(frozen=True)
class AssetNode:
    """A server, database or element in the AF tree."""
    id: str
    name: str
    kind: NodeKind
    type_template: Optional[str] = None
    path: str = ""
    has_children: bool = False
    links: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_item(cls, item: Dict[str, Any], kind: NodeKind) -> "AssetNode":
        return cls(
            id=_text(item.get("WebId")) or _text(item.get("Id")),
            name=_text(item.get("Name")),
            kind=kind,
            type_template=_text(item.get("TemplateName")) or None,
            path=_text(item.get("Path")),
            has_children=bool(item.get("HasChildren", False)),
            links=_links(item),
        )


@dataclass(frozen=True)
class AttributeDescriptor:
    """Declares an attribute and where its value lives; carries no value."""
    name: str
    id: str
    value_link: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "AttributeDescriptor":
        return cls(
            name=_text(item.get("Name")),
            id=_text(item.get("WebId")) or _text(item.get("Id")),
            value_link=_links(item).get("Value"),
        )


@dataclass(frozen=True)
class AttributeValue:
    """Wire value container returned by a value link."""
    raw_value: Any
    good: Optional[bool] = None
    questionable: Optional[bool] = None
    errors: Tuple[str, ...] = ()
    timestamp: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AttributeValue":
        errors = payload.get("Errors") or ()
        if not isinstance(errors, (list, tuple)):
            errors = (errors,)
        return cls(
            raw_value=payload.get("Value"),
            good=_flag(payload.get("Good")),
            questionable=_flag(payload.get("Questionable")),
            errors=tuple(str(e) for e in errors),
            timestamp=parse_timestamp(payload.get("Timestamp")),
        )


class ReadingState(str, Enum):
    MEASURED = "measured"
    NOT_FOUND = "not_found"
    NO_VALUE = "no_value"
    UNPARSEABLE = "unparseable"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class AttributeReading:
    """
    Normalized result for one configured key on one unit.

    ``value`` is 0.0 whenever ``state`` is not MEASURED; ``state`` keeps
    "not found" apart from "measured zero".
    """
    key: str
    display_name: str
    state: ReadingState
    value: float = 0.0
    good: Optional[bool] = None
    questionable: Optional[bool] = None
    errors: Tuple[str, ...] = ()
    timestamp: Optional[datetime] = None

    @property
    def measured(self) -> bool:
        return self.state is ReadingState.MEASURED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "displayName": self.display_name,
            "state": self.state.value,
            "value": self.value,
            "good": self.good,
            "questionable": self.questionable,
            "errors": list(self.errors),
            "timestamp": _isoformat_z(self.timestamp) if self.timestamp else None,
        }


@dataclass(frozen=True)
class UnitRecord:
    """Per-leaf result (a well). Status and health are derived, never stored."""
    id: str
    name: str
    readings: Mapping[str, AttributeReading]
    last_updated: datetime

    def __post_init__(self):
        object.__setattr__(self, "readings", MappingProxyType(dict(self.readings)))

    @property
    def attributes(self) -> Dict[str, float]:
        return {r.display_name: r.value for r in self.readings.values()}

    @property
    def metrics(self) -> Dict[str, float]:
        return {key: r.value for key, r in self.readings.items()}

    def measured(self, key: str) -> Optional[float]:
        """Value of a canonical key if it was actually measured, else None."""
        reading = self.readings.get(key)
        if reading is None or not reading.measured:
            return None
        return reading.value

    @property
    def status(self) -> str:
        oil = self.measured("oilRate")
        return "active" if oil is not None and oil != 0 else "inactive"

    @property
    def plan_deviation(self) -> Optional[float]:
        oil = self.measured("oilRate")
        target = self.measured("planTarget")
        if oil is None or target is None or target <= 0:
            return None
        return (oil - target) / target * 100

    @property
    def health(self) -> str:
        deviation = self.plan_deviation
        water_cut = self.measured("waterCut")
        dev = abs(deviation) if deviation is not None else 0.0
        wc = water_cut if water_cut is not None else 0.0
        if dev > DEVIATION_ALERT or wc > WATER_CUT_ALERT:
            return "alert"
        if dev > DEVIATION_WARNING or wc > WATER_CUT_WARNING:
            return "warning"
        return "good"

    def unavailable_keys(self) -> List[str]:
        return [key for key, r in self.readings.items() if not r.measured]

    def to_dict(self) -> Dict[str, Any]:
        deviation = self.plan_deviation
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "health": self.health,
            "planDeviation": round(deviation, 1) if deviation is not None else None,
            "attributes": self.attributes,
            "readings": {key: r.to_dict() for key, r in self.readings.items()},
            "lastUpdated": _isoformat_z(self.last_updated),
        }


@dataclass(frozen=True)
class GroupRecord:
    """A wellpad: its units plus aggregates recomputed on every access."""
    id: str
    name: str
    location: str
    units: Tuple[UnitRecord, ...]

    @property
    def aggregates(self):
        from .aggregation import aggregate
        return aggregate(self.units)

    @property
    def status(self) -> str:
        from .aggregation import group_status
        return group_status(self.units)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "status": self.status,
            "units": [u.to_dict() for u in self.units],
        }
        data.update(self.aggregates.to_dict())
        return data


class Provenance(str, Enum):
    LIVE = "live"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class LoadResult:
    groups: List[GroupRecord]
    provenance: Provenance
    diagnostics: Optional[PIAFError] = None

    @property
    def is_live(self) -> bool:
        return self.provenance is Provenance.LIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "provenance": self.provenance.value,
            "diagnostics": self.diagnostics.to_dict() if self.diagnostics else None,
        }
