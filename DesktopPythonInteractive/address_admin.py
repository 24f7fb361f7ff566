#!/usr/bin/env python3
"""
address_admin.py

Purpose:
  Manage the event map's address list and rules from a terminal.
  Every change posts the complete list to the site and then re-reads it, so
  what is printed afterwards is what the server actually stored (including
  any coordinates it geocoded).

Endpoints used:
  POST /signin                 form: username, password (session cookie)
  GET  /api/addresses          -> JSON list
  POST /api/addresses          body: {"addresses": [...]} (full list)
  GET  /api/geocode?q=...      -> {"lat": ..., "lon": ...}
  GET/POST /api/rules          body: {"rules": "..."}
  POST /api/change-password    body: {"currentPassword": ..., "newPassword": ...}

Credential precedence:
  1) --username / --password (CLI)
  2) env EVENTMAP_USERNAME / EVENTMAP_PASSWORD
  3) interactive prompt for the password

Examples:
  python address_admin.py list
  python address_admin.py add "12 Main St" -i "Side gate"
  python address_admin.py edit 0 "14 Main St"
  python address_admin.py set-location 0 --lat -34.357 --lon 146.903
  python address_admin.py delete 2
  python address_admin.py rules --set "$(cat rules.txt)"

Exit codes:
  0 = success
  1 = handled application error (bad index, rejected save, failed sign-in)
  2 = network/HTTP error
"""

from __future__ import annotations

import argparse
import getpass
import json
import os
import sys
from typing import Any, Optional

import requests

from eventmap.client.address_book import AddressBook, AddressSuffix, MapSeed, SaveOutcome
from eventmap.client.api import AdminApiClient, SignInFailed

DEFAULT_BASE_URL = os.getenv("EVENTMAP_URL", "http://localhost:3000")
DEFAULT_SUFFIX = os.getenv("ADDRESS_SUFFIX", "ardlethan nsw 2665")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Manage event map addresses and rules.")
    p.add_argument("--base-url", default=DEFAULT_BASE_URL, help=f"Site URL (default: {DEFAULT_BASE_URL})")
    p.add_argument("--username", default=None, help="Admin username (env EVENTMAP_USERNAME).")
    p.add_argument("--password", default=None, help="Admin password (env EVENTMAP_PASSWORD).")
    p.add_argument("--suffix", default=DEFAULT_SUFFIX, help="Locality appended to street addresses.")
    p.add_argument("--timeout", type=float, default=60.0,
                   help="HTTP timeout in seconds; saves wait for geocoding (default: 60)")
    p.add_argument("--json", action="store_true", help="Print the address list as JSON.")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="Show all addresses.")

    add = sub.add_parser("add", help="Append an address.")
    add.add_argument("street")
    add.add_argument("-i", "--instructions", default=None)

    edit = sub.add_parser("edit", help="Change an address by position.")
    edit.add_argument("index", type=int)
    edit.add_argument("street")
    edit.add_argument("-i", "--instructions", default=None,
                      help="New instructions; omit to keep, pass '' to clear.")

    loc = sub.add_parser("set-location", help="Pin an address to coordinates.")
    loc.add_argument("index", type=int)
    loc.add_argument("--lat", type=float, default=None)
    loc.add_argument("--lon", type=float, default=None)

    delete = sub.add_parser("delete", help="Remove an address by position.")
    delete.add_argument("index", type=int)
    delete.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation.")

    rules = sub.add_parser("rules", help="Show or replace the rules text.")
    rules.add_argument("--set", dest="new_rules", default=None)

    sub.add_parser("change-password", help="Rotate the admin password.")
    return p.parse_args(argv)


def resolve_credentials(args: argparse.Namespace) -> tuple[str, str]:
    username = args.username or os.getenv("EVENTMAP_USERNAME") or "admin"
    password = args.password or os.getenv("EVENTMAP_PASSWORD")
    if not password:
        password = getpass.getpass(f"Password for {username}: ")
    return username, password


def print_addresses(book: AddressBook, as_json: bool) -> None:
    if as_json:
        print(json.dumps(book.addresses, indent=2))
        return
    for index, address in enumerate(book.addresses):
        has_coords = address.get("lat") is not None and address.get("lon") is not None
        where = f"[{address['lat']:.5f}, {address['lon']:.5f}]" if has_coords else "[no location]"
        print(f"{index:3d}  {address.get('text', '')}  {where}")
        if address.get("instructions"):
            print(f"       Instructions: {address['instructions']}")


def report(outcome: Optional[SaveOutcome]) -> int:
    if outcome is None:
        print("Nothing changed.")
        return 0
    print(outcome.message, file=sys.stdout if outcome.success else sys.stderr)
    return 0 if outcome.success else 1


def prompt_for_location(seed: MapSeed) -> Optional[tuple[float, float]]:
    hint = "current pin" if seed.has_marker else "best guess"
    print(f"{hint}: {seed.lat:.6f}, {seed.lon:.6f}")
    raw = input("New 'lat,lon' (blank to cancel): ").strip()
    if not raw:
        return None
    lat, lon = (float(part) for part in raw.split(","))
    return lat, lon


def run(args: argparse.Namespace, client: AdminApiClient) -> int:
    book = AddressBook(client, suffix=AddressSuffix(args.suffix))
    book.refresh()

    if args.command == "list":
        print_addresses(book, args.json)
        return 0

    if args.command == "rules" and args.new_rules is None:
        print(client.fetch_rules())
        return 0

    client.sign_in(*resolve_credentials(args))

    if args.command == "add":
        code = report(book.add(args.street, args.instructions))
    elif args.command == "edit":
        instructions = args.instructions
        if instructions is None:
            instructions = book.get(args.index).get("instructions")
        code = report(book.edit(args.index, args.street, instructions))
    elif args.command == "set-location":
        if args.lat is not None and args.lon is not None:
            code = report(book.set_location(args.index, args.lat, args.lon))
        else:
            code = report(book.pick_location(args.index, prompt_for_location))
    elif args.command == "delete":
        def confirm(address: dict[str, Any]) -> bool:
            if args.yes:
                return True
            return input(f'Delete "{address.get("text")}"? [y/N] ').strip().lower() == "y"

        code = report(book.delete(args.index, confirm))
    elif args.command == "rules":
        result = client.save_rules(args.new_rules)
        return report(SaveOutcome(bool(result.get("success")), str(result.get("message", ""))))
    elif args.command == "change-password":
        current = getpass.getpass("Current password: ")
        new = getpass.getpass("New password: ")
        if new != getpass.getpass("Confirm new password: "):
            print("New passwords do not match.", file=sys.stderr)
            return 1
        result = client.change_password(current, new)
        return report(SaveOutcome(bool(result.get("success")), str(result.get("message", ""))))
    else:
        raise ValueError(f"Unknown command {args.command}")

    print_addresses(book, args.json)
    return code


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    client = AdminApiClient(args.base_url, timeout=args.timeout)
    try:
        return run(args, client)
    except requests.exceptions.RequestException as e:
        print(f"NETWORK_ERROR: {e}", file=sys.stderr)
        return 2
    except (SignInFailed, IndexError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
