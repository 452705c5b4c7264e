"""
Aggregator: fold unit records into wellpad-level summaries.

Rates are summed and pressures averaged over active units only. An average
over no contributing units is 0.0, never NaN.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .models import PRESSURE_KEYS, UnitRecord

STATUS_ORDER = ("good", "warning", "alert")


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _measured(units: Iterable[UnitRecord], key: str) -> List[float]:
    values = []
    for unit in units:
        value = unit.measured(key)
        if value is not None:
            values.append(value)
    return values


@dataclass(frozen=True)
class GroupAggregates:
    total_oil_rate: float = 0.0
    total_gas_rate: float = 0.0
    total_liquid_rate: float = 0.0
    total_water_rate: float = 0.0
    average_pressure: float = 0.0
    average_pressures: Dict[str, float] = field(default_factory=dict)
    average_oil_rate: float = 0.0
    average_water_cut: float = 0.0
    total_units: int = 0
    active_units: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalOilRate": self.total_oil_rate,
            "totalGasRate": self.total_gas_rate,
            "totalLiquidRate": self.total_liquid_rate,
            "totalWaterRate": self.total_water_rate,
            "averagePressure": self.average_pressure,
            "averagePressures": dict(self.average_pressures),
            "avgOilRate": self.average_oil_rate,
            "avgWaterCut": self.average_water_cut,
            "totalWells": self.total_units,
            "activeWells": self.active_units,
        }


def water_rate(unit: UnitRecord) -> Optional[float]:
    """Liquid minus oil, when both were measured."""
    liquid = unit.measured("liquidRate")
    oil = unit.measured("oilRate")
    if liquid is None or oil is None:
        return None
    return liquid - oil


def aggregate(units: Sequence[UnitRecord]) -> GroupAggregates:
    active = [u for u in units if u.status == "active"]
    water = [w for w in (water_rate(u) for u in active) if w is not None]
    pressures = {key: _mean(_measured(active, key)) for key in PRESSURE_KEYS
                 if any(key in u.readings for u in units)}
    return GroupAggregates(
        total_oil_rate=sum(_measured(active, "oilRate")),
        total_gas_rate=sum(_measured(active, "gasRate")),
        total_liquid_rate=sum(_measured(active, "liquidRate")),
        total_water_rate=sum(water),
        average_pressure=_mean(_measured(active, "tubingPressure")),
        average_pressures=pressures,
        average_oil_rate=_mean(_measured(active, "oilRate")),
        average_water_cut=_mean(_measured(active, "waterCut")),
        total_units=len(units),
        active_units=len(active),
    )


def escalate(statuses: Iterable[str]) -> str:
    """Worst of good < warning < alert; unknown values count as good."""
    worst = 0
    for status in statuses:
        if status in STATUS_ORDER:
            worst = max(worst, STATUS_ORDER.index(status))
    return STATUS_ORDER[worst]


def group_status(units: Sequence[UnitRecord]) -> str:
    return escalate(u.health for u in units)
