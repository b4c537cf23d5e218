"""
Command-line interface for crm-sync

Lists, exports and edits CRM collections through the sync engine.

Usage:
    crmsync list clients                          # First page of clients
    crmsync list inquiries --search acme          # Search inquiries
    crmsync list inquiries --filter area_id=a1    # Filter by area
    crmsync export inquiries -o ./exports         # CSV export
    crmsync notifications unread                  # Unread count
    crmsync delete clients 64f0c2                 # Delete with confirmation
"""

import argparse
import asyncio
import json
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_settings(args):
    """Build SyncSettings from global CLI options."""
    from crm_sync.settings import SyncSettings

    overrides = {
        "base_url": args.base_url,
        "token": args.token,
        "timeout": args.timeout,
        "page_size": getattr(args, "limit", None),
    }
    return SyncSettings(**{k: v for k, v in overrides.items() if v is not None})


def parse_filters(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` options."""
    filters = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Invalid filter {pair!r}, expected key=value")
        filters[key.strip()] = value.strip()
    return filters


def build_query(engine, args):
    """Compose the query described by --search/--filter/--page."""
    from crm_sync.sync import compose

    query = compose(
        engine.query,
        search_term=args.search or "",
        filters=parse_filters(args.filter),
    )
    if getattr(args, "page", None):
        query = compose(query, page=args.page)
    return query


def cmd_list(args):
    """Show one page of a collection."""
    from crm_sync.sync import inquiry_stats, open_engine

    async def run():
        async with open_engine(args.collection, build_settings(args)) as engine:
            await engine.set_query(build_query(engine, args))
            return engine.collection, engine.state()

    collection, state = asyncio.run(run())

    if state.error:
        print(f"Error: {state.error.message}")
        sys.exit(1)

    if args.json:
        print(json.dumps(
            {
                "items": [item.model_dump(mode="json", by_alias=True) for item in state.items],
                "pagination": state.pagination.model_dump(),
            },
            indent=2,
            default=str,
        ))
        return

    pagination = state.pagination
    print(f"\n{'=' * 50}")
    print(f"{collection.name.upper()}: page {pagination.current_page} of {pagination.total_pages}")
    print(f"{'=' * 50}")
    for item in state.items:
        label = getattr(item, "name", None) or getattr(item, "message", None) or ""
        print(f"  {item.id}  {label}")
    print(f"\nTotal: {pagination.total_items}")

    if collection.name == "inquiries":
        stats = inquiry_stats(state)
        print("On this page:")
        print(f"  High priority:   {stats.high_priority}")
        print(f"  Medium priority: {stats.medium_priority}")
        print(f"  Low priority:    {stats.low_priority}")
        print(f"  With audio:      {stats.with_audio}")


def cmd_export(args):
    """Download a collection's CSV export."""
    from crm_sync.sync import open_engine

    async def run():
        async with open_engine(args.collection, build_settings(args)) as engine:
            return await engine.export(args.output, query=build_query(engine, args))

    path = asyncio.run(run())
    print(f"Saved export to {path}")


def cmd_delete(args):
    """Delete a record after confirmation."""
    from crm_sync.sync import open_engine

    if not args.yes:
        answer = input(f"Delete {args.collection}/{args.id}? [y/N] ")
        confirmed = answer.strip().lower() in ("y", "yes")
    else:
        confirmed = True

    async def run():
        async with open_engine(args.collection, build_settings(args)) as engine:
            engine.request_delete(args.id)
            if not confirmed:
                return engine.cancel_delete()
            return await engine.confirm_delete()

    result = asyncio.run(run())
    if result.status.value == "cancelled":
        print("Cancelled")
    elif result.ok:
        print(f"Deleted {args.collection}/{args.id}")
    else:
        print(f"Error: {result.error.message if result.error else result.status.value}")
        sys.exit(1)


def cmd_notifications(args):
    """Unread count and mark-read actions."""
    from crm_sync.sync import open_engine

    async def run():
        async with open_engine("notifications", build_settings(args)) as engine:
            if args.action == "unread":
                return None, await engine.refresh_unread_count()
            if args.action == "read":
                if not args.id:
                    raise ValueError("Notification id required for 'read'")
                await engine.load()
                result = await engine.mark_read(args.id)
            else:
                await engine.load()
                result = await engine.mark_all_read()
            return result, engine.unread_count

    result, count = asyncio.run(run())
    if result is not None and not result.ok:
        print(f"Error: {result.error.message if result.error else result.status.value}")
        sys.exit(1)
    print(f"Unread notifications: {count}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="crmsync",
        description="CRM Sync - list, export and edit CRM console data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Browse
  crmsync list clients
  crmsync list inquiries --search acme --page 2
  crmsync list inquiries --filter owner_id=u7 --filter date_range=week

  # Export
  crmsync export inquiries --filter area_id=a1 -o ./exports

  # Notifications
  crmsync notifications unread
  crmsync notifications read-all

Use 'crmsync <command> --help' for more information on each command.
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument("--base-url", help="API base URL")
    parser.add_argument("--token", help="Bearer token")
    parser.add_argument("--timeout", type=int, help="Request timeout in seconds")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # list command
    list_parser = subparsers.add_parser("list", help="Show one page of a collection")
    list_parser.add_argument("collection", help="clients, inquiries, notifications, areas, users")
    list_parser.add_argument("--search", "-s", help="Search term")
    list_parser.add_argument("--page", "-p", type=int, help="Page number (default: 1)")
    list_parser.add_argument("--limit", "-l", type=int, help="Page size (default: 20)")
    list_parser.add_argument(
        "--filter", "-f", action="append", help="Filter as key=value (repeatable)"
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_list)

    # export command
    export_parser = subparsers.add_parser("export", help="Download CSV export")
    export_parser.add_argument("collection", help="clients or inquiries")
    export_parser.add_argument("--search", "-s", help="Search term")
    export_parser.add_argument(
        "--filter", "-f", action="append", help="Filter as key=value (repeatable)"
    )
    export_parser.add_argument("--output", "-o", default=".", help="Output directory (default: .)")
    export_parser.set_defaults(func=cmd_export)

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a record")
    delete_parser.add_argument("collection", help="Collection name")
    delete_parser.add_argument("id", help="Record id")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    delete_parser.set_defaults(func=cmd_delete)

    # notifications command
    notif_parser = subparsers.add_parser("notifications", help="Notification actions")
    notif_parser.add_argument("action", choices=["unread", "read", "read-all"])
    notif_parser.add_argument("id", nargs="?", help="Notification id (for 'read')")
    notif_parser.set_defaults(func=cmd_notifications)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
