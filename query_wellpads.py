"""
PI AF Wellpad Query Script

Loads wellpads and wells from PI AF through the PI Web API and shows their
production summary. When the live system cannot be used, synthetic data is
shown instead and clearly marked as such.

Usage:
    python query_wellpads.py                    # Load and show wellpads
    python query_wellpads.py --wells            # Also list every well
    python query_wellpads.py --simulate --seed 42
    python query_wellpads.py --json-output      # Raw JSON
    python query_wellpads.py --csv wells.csv    # Export wells with pandas

Environment variables (from .env file):
    PIAF_WEB_API_HOST, PIAF_SERVER_NAME, PIAF_DATABASE_NAME, PIAF_PARENT_PATH,
    PIAF_TEMPLATE_NAME, PIAF_ATTRIBUTE_MAPPING, PIAF_USERNAME, PIAF_PASSWORD
"""

import json
import logging
import sys
from typing import List

import click
from colorama import init, Fore, Style

from piaf.cancellation import CancellationToken
from piaf.config import create_transport, load_attribute_mapping, load_server_config
from piaf.export import groups_to_dataframe, units_to_dataframe
from piaf.loader import LoadOptions, load_groups
from piaf.models import GroupRecord, LoadResult, Provenance
from piaf.synthetic import SyntheticGenerator

# Initialize colorama
init()

STATUS_COLORS = {"good": Fore.GREEN, "warning": Fore.YELLOW, "alert": Fore.RED}


def print_header(text: str):
    """Print a formatted header."""
    print(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{text}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")


def print_success(text: str):
    """Print success message."""
    print(f"{Fore.GREEN}✓ {text}{Style.RESET_ALL}")


def print_error(text: str):
    """Print error message."""
    print(f"{Fore.RED}✗ {text}{Style.RESET_ALL}")


def print_info(text: str):
    """Print info message."""
    print(f"{Fore.YELLOW}→ {text}{Style.RESET_ALL}")


def colored_status(status: str, width: int = 10) -> str:
    return f"{STATUS_COLORS.get(status, Fore.WHITE)}{status:<{width}}{Style.RESET_ALL}"


def display_provenance(result: LoadResult):
    if result.provenance is Provenance.LIVE:
        print_success("Live data from PI AF")
        return
    print_error("SYNTHETIC DATA: live PI AF data is not shown")
    if result.diagnostics is not None:
        print_info(f"Reason: {result.diagnostics}")


def display_groups_table(groups: List[GroupRecord]):
    """Display wellpads in a table format."""
    if not groups:
        print_info("No wellpads found.")
        return

    print(f"{'Wellpad':<28} {'Status':<10} {'Wells':>7} {'Oil':>10} {'Liquid':>10} "
          f"{'Water':>10} {'Avg WC %':>9}")
    print("-" * 90)
    for group in groups:
        agg = group.aggregates
        wells = f"{agg.active_units}/{agg.total_units}"
        print(f"{group.name[:26]:<28} {colored_status(group.status)} {wells:>7} "
              f"{agg.total_oil_rate:>10.1f} {agg.total_liquid_rate:>10.1f} "
              f"{agg.total_water_rate:>10.1f} {agg.average_water_cut:>9.1f}")


def display_wells(group: GroupRecord):
    """Display the wells of one wellpad."""
    print(f"\n  {Fore.CYAN}{group.name}{Style.RESET_ALL} ({group.location})")
    for unit in group.units:
        deviation = unit.plan_deviation
        dev = f"{deviation:+.1f}%" if deviation is not None else "N/A"
        print(f"    {unit.name[:22]:<24} {unit.status:<9} {colored_status(unit.health, 8)} "
              f"oil {unit.metrics.get('oilRate', 0.0):>8.1f}  plan dev {dev:>7}")
        missing = unit.unavailable_keys()
        if missing:
            print(f"      {Fore.YELLOW}unavailable: {', '.join(missing)}{Style.RESET_ALL}")


@click.command()
@click.option("--host", default=None, help="PI Web API host name")
@click.option("--server", default=None, help="AF server name")
@click.option("--database", default=None, help="AF database name")
@click.option("--path", default=None, help="Backslash-delimited element path to the wellpads")
@click.option("--template", default=None, help="Only include wells using this element template")
@click.option("--simulate", is_flag=True, help="Skip PI AF and generate synthetic data")
@click.option("--seed", default=None, type=int, help="Seed for synthetic data")
@click.option("--timeout", default=None, type=float, help="Deadline for the whole run in seconds")
@click.option("--max-groups", default=10, help="Maximum number of wellpads")
@click.option("--wells", "show_wells", is_flag=True, help="List every well")
@click.option("--csv", "csv_path", default=None, help="Write one row per well to this CSV file")
@click.option("--groups-csv", "groups_csv_path", default=None, help="Write one row per wellpad to this CSV file")
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option("--insecure", is_flag=True, help="Skip SSL certificate verification")
@click.option("--verbose", is_flag=True, help="Log pipeline progress to stderr")
def main(host, server, database, path, template, simulate, seed, timeout, max_groups,
         show_wells, csv_path, groups_csv_path, json_output, insecure, verbose):
    """
    Query wellpads from PI AF.

    Examples:

    \b
    # Load from the configured database
    python query_wellpads.py

    \b
    # Narrow to a path and template
    python query_wellpads.py --path "Permian\\Wellpads" --template Well

    \b
    # Reproducible synthetic data
    python query_wellpads.py --simulate --seed 42 --wells
    """
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    try:
        mapping = load_attribute_mapping()
    except ValueError as e:
        print_error(str(e))
        sys.exit(1)

    if simulate:
        result = LoadResult(SyntheticGenerator(seed).generate(mapping), Provenance.SYNTHETIC)
    else:
        try:
            config = load_server_config(api_host_name=host, server_name=server,
                                        database_name=database, parent_path=path,
                                        template_filter=template)
        except ValueError as e:
            print_error(f"{e}. Set them in .env or use --host/--server/--database")
            sys.exit(1)
        if not json_output:
            print_header("PI AF Wellpad Explorer")
            print_info(f"Host: {config.api_host_name}  Server: {config.server_name}  "
                       f"Database: {config.database_name}")
        options = LoadOptions(max_groups=max_groups, fallback_seed=seed)
        with create_transport(verify_ssl=False if insecure else None) as transport:
            result = load_groups(config, mapping, cancel=CancellationToken(timeout),
                                 transport=transport, options=options)

    written = []
    if csv_path:
        wells_df = units_to_dataframe(result.groups)
        wells_df.to_csv(csv_path, index=False)
        written.append(f"Wrote {len(wells_df)} wells to {csv_path}")
    if groups_csv_path:
        groups_df = groups_to_dataframe(result.groups)
        groups_df.to_csv(groups_csv_path, index=False)
        written.append(f"Wrote {len(groups_df)} wellpads to {groups_csv_path}")

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
        return

    if simulate:
        print_header("PI AF Wellpad Explorer (simulated)")
    display_provenance(result)
    print()
    display_groups_table(result.groups)
    if show_wells:
        for group in result.groups:
            display_wells(group)
    if written:
        print()
    for message in written:
        print_success(message)
    print()


if __name__ == "__main__":
    main()
