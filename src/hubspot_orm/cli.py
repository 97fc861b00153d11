#!/usr/bin/env python3
"""
hubspot-orm CLI

Quick checks against a HubSpot portal from the shell.

Usage:
    hubspot-orm check                        # Verify the access token
    hubspot-orm properties contacts          # List a type's properties
    hubspot-orm get companies 123            # Show one record
    hubspot-orm search contacts "acme.com"   # Full-text search
"""

import argparse
import json
import sys

import httpx
from colorama import Fore, Style, just_fix_windows_console

import hubspot_orm
from hubspot_orm.company import Company
from hubspot_orm.contact import Contact
from hubspot_orm.exceptions import HubspotError
from hubspot_orm.form import Form
from hubspot_orm.user import User

GREEN = Fore.GREEN
RED = Fore.RED
YELLOW = Fore.YELLOW
BLUE = Fore.CYAN
RESET = Style.RESET_ALL
BOLD = Style.BRIGHT

RESOURCE_TYPES = {
    cls.resource_name(): cls for cls in (Contact, Company, Form, User)
}


def print_success(msg: str):
    print(f"{GREEN}✓ {msg}{RESET}")


def print_error(msg: str):
    print(f"{RED}✗ {msg}{RESET}", file=sys.stderr)


def print_info(msg: str):
    print(f"{BLUE}ℹ {msg}{RESET}")


def print_record(record) -> None:
    print(f"{BOLD}{type(record).__name__} {record.id}{RESET}")
    for key, value in sorted(record.properties.items()):
        print(f"  {key}: {value}")
    if record.metadata:
        print(f"  {YELLOW}metadata: {json.dumps(record.metadata, default=str)}{RESET}")


def cmd_check(args) -> int:
    """Verify the token by listing a single contact."""
    contact = Contact.list().first()
    print_success("Connected successfully!")
    if contact is not None:
        print_info(f"First contact id: {contact.id}")
    return 0


def cmd_properties(args) -> int:
    """List property names and descriptions for a resource type."""
    resource_class = RESOURCE_TYPES[args.resource]
    properties = resource_class.custom_properties() if args.custom else resource_class.all_properties()

    for prop in properties:
        flag = f" {YELLOW}(read-only){RESET}" if prop.is_read_only else ""
        print(f"{BOLD}{prop.name}{RESET} [{prop.type}]{flag}  {prop.summary}")

    print_info(f"{len(properties)} properties")
    return 0


def cmd_get(args) -> int:
    """Show one record by id."""
    resource_class = RESOURCE_TYPES[args.resource]
    properties = args.properties.split(",") if args.properties else None
    print_record(resource_class.find(args.id, properties=properties))
    return 0


def cmd_search(args) -> int:
    """Full-text search over a resource type."""
    resource_class = RESOURCE_TYPES[args.resource]
    found = resource_class.search(args.query).first(args.limit)
    # first(1) returns a bare record
    records = found if isinstance(found, list) else [r for r in (found,) if r is not None]

    for record in records:
        print_record(record)
    print_info(f"{len(records)} shown")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    just_fix_windows_console()
    parser = argparse.ArgumentParser(
        description="HubSpot resource CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hubspot-orm check
  hubspot-orm properties contacts --custom
  hubspot-orm get contacts 123 --properties email,firstname
  hubspot-orm search companies "acme" --limit 5

The access token is read from --token or HUBSPOT_ACCESS_TOKEN.
        """,
    )
    parser.add_argument("--token", help="Access token (default: $HUBSPOT_ACCESS_TOKEN)")
    parser.add_argument("--log-level", help="debug, info, warn, error")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    types = sorted(RESOURCE_TYPES)

    subparsers.add_parser("check", help="Verify the access token")

    properties_parser = subparsers.add_parser("properties", help="List a type's properties")
    properties_parser.add_argument("resource", choices=types)
    properties_parser.add_argument("--custom", action="store_true", help="Only non-HubSpot properties")

    get_parser = subparsers.add_parser("get", help="Show one record")
    get_parser.add_argument("resource", choices=types)
    get_parser.add_argument("id")
    get_parser.add_argument("--properties", help="Comma-separated property names")

    search_parser = subparsers.add_parser("search", help="Full-text search")
    search_parser.add_argument("resource", choices=types)
    search_parser.add_argument("query")
    search_parser.add_argument("--limit", type=int, default=10)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    options = {}
    if args.token:
        options["access_token"] = args.token
    if args.log_level:
        options["log_level"] = args.log_level
    hubspot_orm.configure(**options)

    if not hubspot_orm.is_configured():
        print_error("Not configured.")
        print_info("Pass --token or set HUBSPOT_ACCESS_TOKEN")
        return 1

    commands = {
        "check": cmd_check,
        "properties": cmd_properties,
        "get": cmd_get,
        "search": cmd_search,
    }

    try:
        return commands[args.command](args)
    except (HubspotError, httpx.HTTPError) as e:
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
