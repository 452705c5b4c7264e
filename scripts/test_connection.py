"""
PI Web API Connection Test

This script checks a PI AF configuration step by step:
1. Probing the candidate PI Web API base URLs for the host
2. Finding the AF server and database
3. Walking the element path to the wellpads
4. Checking the mapped attributes on the first well

Usage:
    python scripts/test_connection.py --host <pi-web-api-host> --server <af-server> --database <db>

    Or using environment variables (see config/.env):
    export PIAF_WEB_API_HOST=piwebapi.example.com
    export PIAF_SERVER_NAME=AFSERVER01
    export PIAF_DATABASE_NAME=Production
    python scripts/test_connection.py

Example:
    python scripts/test_connection.py --path "Permian\\Wellpads" --template Well --all-candidates
"""

import sys
from typing import Optional

import click
from colorama import init, Fore, Style

from piaf.config import (
    ENV_DATABASE_NAME,
    ENV_SERVER_NAME,
    ENV_WEB_API_HOST,
    create_transport,
    load_attribute_mapping,
    load_server_config,
)
from piaf.endpoints import REACHABLE_AUTH_STATUSES, EndpointResolver
from piaf.errors import AuthRequiredError, NotFoundError, PIAFError
from piaf.loader import DiscoveryRun
from piaf.navigator import filter_by_template

# Initialize colorama for cross-platform colored output
init()


def print_header(host: str) -> None:
    """Print the test header."""
    print("\n" + "=" * 60)
    print("PI Web API Connection Test")
    print("=" * 60)
    print(f"\nTesting host: {host}")
    print("-" * 60 + "\n")


def print_success(message: str) -> None:
    """Print a success message with a checkmark."""
    print(f"{Fore.GREEN}[✓]{Style.RESET_ALL} {message}")


def print_failure(message: str) -> None:
    """Print a failure message with an X."""
    print(f"{Fore.RED}[✗]{Style.RESET_ALL} {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    print(f"{Fore.YELLOW}[!]{Style.RESET_ALL} {message}")


def print_summary(passed: bool) -> None:
    print("\n" + "=" * 60)
    if passed:
        print(f"{Fore.GREEN}Connection test completed successfully!{Style.RESET_ALL}")
    else:
        print(f"{Fore.RED}Connection test failed!{Style.RESET_ALL}")
    print("=" * 60 + "\n")


def probe_endpoints(run: DiscoveryRun, all_candidates: bool) -> Optional[str]:
    """
    Probe the candidate base URLs and print one line per attempt.

    :param run: The discovery run whose transport and host are used.
    :param all_candidates: Keep probing after the first reachable URL.
    :return: The first reachable base URL, or None.
    """
    resolver = EndpointResolver(run.transport, run.options.probe_timeout)
    attempts = resolver.probe_all(run.config.api_host_name, run.cancel,
                                  stop_on_success=not all_candidates)
    found = None
    for attempt in attempts:
        if attempt["reachable"]:
            note = " (credentials required)" if attempt["status"] in REACHABLE_AUTH_STATUSES else ""
            print_success(f"{attempt['url']} -> HTTP {attempt['status']}{note}")
            found = found or attempt["url"]
        elif attempt["status"] is not None:
            print_warning(f"{attempt['url']} -> HTTP {attempt['status']}")
        else:
            print_failure(f"{attempt['url']} -> {attempt['error']}")
    return found


def check_attributes(run: DiscoveryRun, groups) -> None:
    """Report which mapped attributes exist on the first well of the first wellpad."""
    navigator = run.navigator()
    for group in groups:
        wells = filter_by_template(navigator.list_children(group), run.config.template_filter)
        if not wells:
            print_warning(f"Wellpad '{group.name}' has no wells"
                          + (f" with template '{run.config.template_filter}'"
                             if run.config.template_filter else ""))
            continue
        print_success(f"Wellpad '{group.name}': {len(wells)} wells")
        well = wells[0]
        declared = {a.name.casefold() for a in navigator.list_attributes(well)}
        for key, display_name in run.mapping.items():
            if display_name.casefold() in declared:
                print_success(f"  {key:<16} '{display_name}' found on '{well.name}'")
            else:
                print_warning(f"  {key:<16} '{display_name}' not found on '{well.name}'")
        return


def run_connection_tests(run: DiscoveryRun, all_candidates: bool) -> bool:
    """
    Run all connection tests.

    :param run: The discovery run to check.
    :param all_candidates: Probe every candidate URL, not just up to the first hit.
    :return: True if the path to the wellpads resolves, False otherwise.
    """
    print_header(run.config.api_host_name)
    if not run.transport.session.verify:
        print_warning("SSL certificate verification is disabled\n")

    # Test 1: Endpoint discovery
    base_url = probe_endpoints(run, all_candidates)
    if base_url is None:
        print_failure("No PI Web API endpoint answered")
        print_summary(False)
        return False
    run.base_url = base_url

    # Test 2: Server, database and path
    try:
        info = run.validate()
    except NotFoundError as e:
        print_failure(str(e.reason))
        if e.available_names:
            print(f"    Available {e.scope.value} names:")
            for name in e.available_names:
                print(f"      - {name}")
        print_summary(False)
        return False
    except AuthRequiredError as e:
        print_failure(f"Authentication failed: HTTP {e.status}. Check PIAF_USERNAME/PIAF_PASSWORD")
        print_summary(False)
        return False
    except PIAFError as e:
        print_failure(str(e))
        print_summary(False)
        return False

    print_success(f"AF server: {info['server']}")
    print_success(f"AF database: {info['database']}")
    path = run.config.parent_path or "(database root)"
    print_success(f"Path {path}: {len(info['groups'])} wellpads")
    for name in info["groups"][:run.options.max_groups]:
        print(f"    - {name}")

    # Test 3: Attribute mapping on a sample well
    try:
        check_attributes(run, run.find_groups(run.navigator()))
    except PIAFError as e:
        # Missing attributes are a warning, not a failure
        print_warning(f"Attribute check failed: {e}")

    print_summary(True)
    return True


@click.command()
@click.option("--host", default=None, help=f"PI Web API host. Can also be set via {ENV_WEB_API_HOST}.")
@click.option("--server", default=None, help=f"AF server name. Can also be set via {ENV_SERVER_NAME}.")
@click.option("--database", default=None, help=f"AF database name. Can also be set via {ENV_DATABASE_NAME}.")
@click.option("--path", default=None, help="Backslash-delimited element path to the wellpads")
@click.option("--template", default=None, help="Only count wells using this element template")
@click.option("--all-candidates", is_flag=True, default=False,
              help="Probe every candidate URL instead of stopping at the first hit")
@click.option("--insecure", is_flag=True, default=False,
              help="Skip SSL certificate verification (not recommended for production)")
def main(host, server, database, path, template, all_candidates, insecure) -> None:
    """
    Test the connection to a PI Web API server and the configured AF path.

    \b
    Environment variables:
      PIAF_WEB_API_HOST   - PI Web API host name
      PIAF_SERVER_NAME    - AF server name
      PIAF_DATABASE_NAME  - AF database name
      PIAF_PARENT_PATH    - Element path to the wellpads
      PIAF_USERNAME       - Basic auth user (optional)
      PIAF_PASSWORD       - Basic auth password (optional)

    Command line options take precedence over environment variables.
    """
    try:
        config = load_server_config(api_host_name=host, server_name=server,
                                    database_name=database, parent_path=path,
                                    template_filter=template)
    except ValueError as e:
        click.echo(f"{Fore.RED}Error:{Style.RESET_ALL} {e}")
        click.echo("Provide them via command line options or environment variables.")
        sys.exit(1)

    with create_transport(verify_ssl=False if insecure else None) as transport:
        run = DiscoveryRun(config, load_attribute_mapping(), transport)
        success = run_connection_tests(run, all_candidates)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
