"""Tabular views of loaded wellpads. Requires pandas."""

from typing import Sequence

from .models import GroupRecord


def _pandas():
    try:
        import pandas as pd
    except ImportError:
        raise ImportError("pandas is required for DataFrame export. Install with: pip install pandas")
    return pd


def units_to_dataframe(groups: Sequence[GroupRecord]):
    """One row per well: group columns, status/health, then one column per canonical key."""
    pd = _pandas()
    rows = []
    for group in groups:
        for unit in group.units:
            row = {
                "group_id": group.id,
                "group_name": group.name,
                "unit_id": unit.id,
                "unit_name": unit.name,
                "status": unit.status,
                "health": unit.health,
                "last_updated": unit.last_updated,
            }
            row.update(unit.metrics)
            rows.append(row)
    return pd.DataFrame(rows)


def groups_to_dataframe(groups: Sequence[GroupRecord]):
    """One row per wellpad with its aggregates."""
    pd = _pandas()
    rows = []
    for group in groups:
        agg = group.aggregates
        rows.append({
            "group_id": group.id,
            "group_name": group.name,
            "location": group.location,
            "status": group.status,
            "total_units": agg.total_units,
            "active_units": agg.active_units,
            "total_oil_rate": agg.total_oil_rate,
            "total_gas_rate": agg.total_gas_rate,
            "total_liquid_rate": agg.total_liquid_rate,
            "total_water_rate": agg.total_water_rate,
            "average_pressure": agg.average_pressure,
            "average_oil_rate": agg.average_oil_rate,
            "average_water_cut": agg.average_water_cut,
        })
    return pd.DataFrame(rows)
