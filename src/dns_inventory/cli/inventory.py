"""
Inventory CLI entrypoint for dns-inventory.

Usage:
    dns-inventory --version
    dns-inventory --help
    dns-inventory --list
    dns-inventory --host <hostname>
    dns-inventory --hosts|--groups [--format json|yaml|yaml-list|yaml-csv]
    dns-inventory --attrs [--format json|yaml|yaml-flow]
    dns-inventory --tree [--format json|yaml]
    dns-inventory --import records.yaml
"""

import argparse
import json
import logging
import platform
import sys
from typing import Dict, Optional, Tuple

from dns_inventory import __version__
from dns_inventory.config import load_config
from dns_inventory.errors import DnsInventoryError, ExitCode, FormatError
from dns_inventory.formatting import FORMATS, attributes_map, marshal
from dns_inventory.inventory.export import export_groups, export_hosts, export_inventory
from dns_inventory.inventory.manager import InventoryManager
from dns_inventory.log import setup_logging

log = logging.getLogger(__name__)

# Formats accepted by each mode; the first one is the default
MODE_FORMATS: Dict[str, Tuple[str, ...]] = {
    'list': ('json',),
    'host': ('json',),
    'hosts': ('yaml-csv', 'yaml-list', 'yaml', 'json'),
    'groups': ('yaml-csv', 'yaml-list', 'yaml', 'json'),
    'attrs': ('yaml-flow', 'yaml', 'json'),
    'tree': ('json', 'yaml'),
    'import': (),
}


def get_version_string() -> str:
    """Generate a detailed version string."""
    python_version = platform.python_version()
    os_info = f"{platform.system()} {platform.release()}"
    return (
        f"dns-inventory {__version__}\n"
        f"  python: {python_version}\n"
        f"  platform: {os_info}"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for dns-inventory."""
    parser = argparse.ArgumentParser(
        prog="dns-inventory",
        description="Ansible dynamic inventory built from DNS TXT records or etcd",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dns-inventory --list
  dns-inventory --hosts --format yaml-list
  dns-inventory --groups --format json
  ADI_DATASOURCE=etcd dns-inventory --import records.yaml
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=get_version_string(),
    )

    modes = parser.add_mutually_exclusive_group()

    modes.add_argument(
        "--list",
        action="store_true",
        dest="list_hosts",
        help="Output the Ansible inventory (JSON)",
    )

    modes.add_argument(
        "--host",
        dest="host",
        default=None,
        help="Output variables of a specific host (JSON)",
    )

    modes.add_argument(
        "--hosts",
        action="store_true",
        help="Export hosts and the groups they belong to",
    )

    modes.add_argument(
        "--groups",
        action="store_true",
        help="Export groups and the hosts they contain",
    )

    modes.add_argument(
        "--attrs",
        action="store_true",
        help="Export host attributes",
    )

    modes.add_argument(
        "--tree",
        action="store_true",
        help="Export the inventory tree",
    )

    modes.add_argument(
        "--import",
        dest="import_file",
        default=None,
        metavar="FILE",
        help="Import host records from a YAML file into the datasource",
    )

    parser.add_argument(
        "-f", "--format",
        dest="format",
        default=None,
        help=f"Export format: {', '.join(FORMATS)}",
    )

    parser.add_argument(
        "-c", "--config",
        dest="config",
        default=None,
        help="Configuration file (default: $ADI_CONFIG_FILE or standard locations)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv)",
    )

    return parser


def get_mode(parsed: argparse.Namespace) -> Optional[str]:
    """Return the selected export mode, if any."""
    if parsed.list_hosts:
        return 'list'
    if parsed.host is not None:
        return 'host'
    if parsed.hosts:
        return 'hosts'
    if parsed.groups:
        return 'groups'
    if parsed.attrs:
        return 'attrs'
    if parsed.tree:
        return 'tree'
    if parsed.import_file is not None:
        return 'import'
    return None


def select_format(mode: str, requested: Optional[str]) -> Optional[str]:
    """Validate the requested format for a mode, or return its default."""
    allowed = MODE_FORMATS[mode]
    if requested is None:
        return allowed[0] if allowed else None
    if requested not in FORMATS:
        raise FormatError(requested)
    if requested not in allowed:
        raise FormatError(requested, mode=f"--{mode}")
    return requested


def run(manager: InventoryManager, mode: str, parsed: argparse.Namespace, format_name: Optional[str]) -> str:
    """Execute one mode and return the text to print."""
    if mode == 'host':
        return json.dumps(manager.get_host_variables(parsed.host), sort_keys=True)

    if mode == 'import':
        hosts = manager.load_import_file(parsed.import_file)
        count = manager.publish(hosts)
        log.info("imported %d host records from %s", count, parsed.import_file)
        return ''

    hosts = manager.get_hosts()

    if mode == 'attrs':
        return marshal(attributes_map(hosts, manager.config.txt.keys), format_name)

    tree = manager.build(hosts)

    if mode == 'list':
        inventory = export_inventory(tree)
        if manager.config.txt.vars.enabled:
            inventory['_meta'] = {'hostvars': manager.host_variables(hosts)}
        return marshal(inventory, format_name)
    if mode == 'hosts':
        return marshal(export_hosts(tree), format_name)
    if mode == 'groups':
        return marshal(export_groups(tree), format_name)

    return marshal(tree.to_dict(), format_name)


def main(args: list[str] | None = None) -> int:
    """Main entrypoint for dns-inventory CLI."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    mode = get_mode(parsed)
    if mode is None:
        parser.print_help()
        return ExitCode.SUCCESS

    setup_logging(parsed.verbose)

    try:
        format_name = select_format(mode, parsed.format)
        config = load_config(parsed.config)

        with InventoryManager(config) as manager:
            output = run(manager, mode, parsed, format_name)

    except DnsInventoryError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return ExitCode.KEYBOARD_INTERRUPT
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        if parsed.verbose >= 2:
            import traceback
            traceback.print_exc()
        return ExitCode.GENERIC_ERROR

    if output:
        sys.stdout.write(output if output.endswith('\n') else output + '\n')

    return ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())
