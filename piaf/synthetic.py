"""
Synthetic Generator: wellpad data with the live path's exact shape.

Used whenever the live path fails. It emits one reading per configured key of
the same attribute mapping, so the record shape matches a live run and only
the provenance tag tells them apart.

Distributions (all uniform):
    unit count ............ integer in [12, 24], batched into pads of 4
    active ................ probability 0.9; inactive units report 0 for rates
    liquid production ..... 100-300 bbl/d, water fraction 0.2-0.6
    oilRate ............... liquid * (1 - water fraction)
    waterCut .............. water fraction * 100
    gasRate ............... liquid * 2-5
    planTarget ............ oilRate + (-20, 20)
    any unknown key ....... 0-100
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import numpy as np

from .models import (
    AttributeMapping,
    AttributeReading,
    GroupRecord,
    ReadingState,
    UnitRecord,
)

logger = logging.getLogger(__name__)

UNIT_COUNT_RANGE = (12, 24)
GROUP_SIZE = 4
ACTIVE_PROBABILITY = 0.9
OPEN_KEY_RANGE = (0.0, 100.0)

FIELD_NAMES = ("North Ridge", "Eagle Creek", "Sunset Valley", "Cedar Flats", "Pine Hollow", "Red Mesa")

UNIFORM_RANGES = {
    "espFrequency": (40.0, 60.0),
    "tubingPressure": (50.0, 250.0),
    "casingPressure": (100.0, 400.0),
    "flowlinePressure": (30.0, 150.0),
    "wellheadPressure": (100.0, 500.0),
    "bottomholePressure": (1000.0, 3000.0),
    "temperature": (60.0, 180.0),
    "chokeSize": (8.0, 64.0),
    "gasLiftRate": (0.0, 500.0),
    "pumpSpeed": (20.0, 100.0),
    "motorAmps": (20.0, 80.0),
    "vibration": (0.0, 5.0),
    "runtime": (0.0, 24.0),
}

RATE_KEYS = ("oilRate", "liquidRate", "gasRate", "gasLiftRate")


def _initials(field_name: str) -> str:
    return "".join(word[0] for word in field_name.split()).upper()


class SyntheticGenerator:
    """
    Produces GroupRecords from a seeded numpy generator.

    Example:
        >>> groups = SyntheticGenerator(seed=7).generate(AttributeMapping({"oilRate": "X"}))
        >>> set(groups[0].units[0].attributes)
        {'X'}
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed

    def _sample(self, rng: np.random.Generator, mapping: AttributeMapping) -> Dict[str, float]:
        liquid = rng.uniform(100.0, 300.0)
        water_fraction = rng.uniform(0.2, 0.6)
        active = rng.random() < ACTIVE_PROBABILITY

        oil = liquid * (1 - water_fraction)
        values = {
            "oilRate": oil,
            "liquidRate": liquid,
            "waterCut": water_fraction * 100,
            "gasRate": liquid * rng.uniform(2.0, 5.0),
            "planTarget": oil + rng.uniform(-20.0, 20.0),
        }
        for key, (low, high) in UNIFORM_RANGES.items():
            values[key] = rng.uniform(low, high)
        values["shutinTime"] = 24.0 - values["runtime"]

        if not active:
            for key in RATE_KEYS:
                values[key] = 0.0
        for key in mapping:
            if key not in values:
                values[key] = rng.uniform(*OPEN_KEY_RANGE)
        return values

    def _unit(self, rng: np.random.Generator, mapping: AttributeMapping,
              unit_id: str, name: str, now: datetime) -> UnitRecord:
        values = self._sample(rng, mapping)
        readings = {
            key: AttributeReading(
                key=key,
                display_name=display_name,
                state=ReadingState.MEASURED,
                value=round(float(values[key]), 1),
                good=True,
                questionable=False,
                timestamp=now,
            )
            for key, display_name in mapping.items()
        }
        return UnitRecord(id=unit_id, name=name, readings=readings, last_updated=now)

    def generate(self, mapping: AttributeMapping) -> List[GroupRecord]:
        rng = np.random.default_rng(self.seed)
        now = datetime.now(timezone.utc)
        unit_count = int(rng.integers(UNIT_COUNT_RANGE[0], UNIT_COUNT_RANGE[1] + 1))

        groups = []
        for index, start in enumerate(range(0, unit_count, GROUP_SIZE)):
            field_name = FIELD_NAMES[index % len(FIELD_NAMES)]
            if index >= len(FIELD_NAMES):
                field_name = f"{field_name} {index // len(FIELD_NAMES) + 1}"
            group_id = f"wellpad-{index + 1}"
            prefix = _initials(field_name)
            size = min(GROUP_SIZE, unit_count - start)
            units = tuple(
                self._unit(rng, mapping, f"{group_id}-{prefix}-{n + 1:03d}", f"{prefix}-{n + 1:03d}", now)
                for n in range(size)
            )
            groups.append(GroupRecord(
                id=group_id,
                name=f"{field_name} Pad",
                location=f"{field_name} Field",
                units=units,
            ))

        logger.info(f"Generated {len(groups)} synthetic wellpads with {unit_count} wells "
                    f"({len(mapping)} mapped attributes)")
        return groups


def generate(mapping: AttributeMapping, seed: Optional[int] = None) -> List[GroupRecord]:
    return SyntheticGenerator(seed).generate(mapping)
