#!/usr/bin/env python3
"""
pinkit - Pinboard toolkit

Command-line interface: keep a local snapshot of a Pinboard account,
search it offline and forward edits to the service.
"""
import sys
import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from pinkit.config import PinkitConfig, init_config, get_config
from pinkit.errors import PinkitError
from pinkit.models import Pin, Tag
from pinkit.store import SnapshotStore
from pinkit.sync import Pinboard

logger = logging.getLogger(__name__)


console = Console()


def get_pinboard() -> Pinboard:
    """Build the synchronizer from the active configuration."""
    return Pinboard.from_config(get_config())


def output_pins(pins: Optional[List[Pin]], format: str = "table", title: str = "Pins"):
    """Output pins in the specified format."""
    pins = pins or []

    if format == "json":
        print(json.dumps([p.to_dict() for p in pins], indent=2, ensure_ascii=False))
    elif format == "urls":
        for p in pins:
            print(p.url)
    else:
        if not pins:
            console.print("[yellow]No results found[/yellow]")
            return

        table = Table(title=title)
        table.add_column("Title", style="green")
        table.add_column("URL", style="blue")
        table.add_column("Tags", style="yellow")
        table.add_column("Private", style="red")
        table.add_column("To read", style="magenta")

        for p in pins:
            table.add_row(
                p.title[:50],
                p.url[:60],
                p.tags[:30],
                "yes" if p.is_private else "",
                "yes" if p.is_toread else "",
            )

        console.print(table)


def output_tags(tags: Optional[List[Tag]], format: str = "table"):
    """Output tags in the specified format."""
    tags = tags or []

    if format == "json":
        print(json.dumps([t.to_dict() for t in tags], indent=2, ensure_ascii=False))
    elif format == "urls":
        for t in tags:
            print(t.name)
    else:
        if not tags:
            console.print("[yellow]No results found[/yellow]")
            return

        table = Table(title="Tags")
        table.add_column("Tag", style="cyan")
        table.add_column("Count", style="green")

        for t in tags:
            table.add_row(t.name, str(t.count))

        console.print(table)


def cmd_sync(args):
    """Refresh the local snapshot."""
    pb = get_pinboard()

    if not args.force and not pb.needs_update():
        if not args.quiet:
            console.print("[green]Cache is up to date[/green]")
        return

    snapshot = pb.update_cache()
    if not args.quiet:
        console.print(
            f"[green]✓ Synchronized {len(snapshot.pins)} pins and {len(snapshot.tags)} tags[/green]"
        )


def cmd_search(args):
    """Search pins in the snapshot."""
    pb = get_pinboard()
    if args.fuzzy:
        pb.search.fuzzy = True
    if args.tags_only:
        pb.search.tags_only = True

    pins = pb.search_items(args.query)
    if pins and args.limit:
        pins = pins[:args.limit]
    output_pins(pins, args.output, title=f"Search Results for '{args.query}'")


def cmd_tags(args):
    """Search tags in the snapshot."""
    pb = get_pinboard()
    if args.fuzzy:
        pb.search.fuzzy = True

    output_tags(pb.search_tags(args.query or ""), args.output)


def cmd_add(args):
    """Add a pin on the service."""
    pb = get_pinboard()

    tags = args.tags.replace(",", " ").split() if args.tags else []
    pin = Pin.new(
        args.url,
        args.title or "",
        tags=tags,
        private=args.private,
        toread=args.toread,
        extended=args.description,
    )
    pb.add(pin)

    if not args.quiet:
        console.print(f"[green]✓ Added {pin.url}[/green]")
        console.print("[dim]Run 'pinkit sync' to see it in search results[/dim]")


def cmd_delete(args):
    """Delete a pin on the service."""
    pb = get_pinboard()
    pb.delete(args.url)
    if not args.quiet:
        console.print(f"[green]✓ Deleted {args.url}[/green]")


def cmd_tag_rename(args):
    """Rename a tag on the service."""
    if args.old_tag == args.new_tag:
        console.print("[yellow]Tags are the same, nothing to do[/yellow]")
        return

    pb = get_pinboard()
    pb.rename_tag(args.old_tag, args.new_tag)
    if not args.quiet:
        console.print(f"[green]✓ Renamed tag '{args.old_tag}' to '{args.new_tag}'[/green]")


def cmd_tag_delete(args):
    """Delete a tag on the service."""
    pb = get_pinboard()
    pb.delete_tag(args.tag)
    if not args.quiet:
        console.print(f"[green]✓ Deleted tag '{args.tag}'[/green]")


def cmd_suggest(args):
    """Show popular tags for a URL."""
    pb = get_pinboard()
    tags = pb.suggest_tags(args.url)

    if args.output == "json":
        print(json.dumps(tags))
    elif not tags:
        console.print("[yellow]No suggestions[/yellow]")
    else:
        print(" ".join(tags))


def cmd_status(args):
    """Show when the snapshot was taken and whether it is outdated."""
    pb = get_pinboard()
    synced_at = pb.last_synced()

    if synced_at is None:
        console.print("[yellow]Not synchronized yet; run 'pinkit sync'[/yellow]")
        return

    outdated = pb.is_cache_outdated(synced_at)
    if args.output == "json":
        print(json.dumps({"synced_at": synced_at.isoformat(), "outdated": outdated}))
        return

    console.print(f"Last sync: {synced_at.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    if outdated:
        console.print("[yellow]Cache is outdated; run 'pinkit sync'[/yellow]")
    else:
        console.print("[green]Cache is up to date[/green]")


def cmd_config(args):
    """Manage configuration."""
    config = get_config()

    if args.action == "show":
        if args.key:
            if args.key not in asdict(config):
                console.print(f"[red]Unknown config key: {args.key}[/red]")
                sys.exit(1)
            print(getattr(config, args.key))
        else:
            data = asdict(config)
            if data.get("api_token"):
                data["api_token"] = "********"
            print(json.dumps(data, indent=2))

    elif args.action == "set":
        if not args.key or args.value is None:
            console.print("[red]Usage: pinkit config set KEY VALUE[/red]")
            sys.exit(1)
        config.set(args.key, args.value)
        config.save()
        if not args.quiet:
            console.print(f"[green]Set {args.key} = {args.value}[/green]")

    elif args.action == "init":
        config_path = Path.home() / ".config" / "pinkit" / "config.toml"
        if config_path.exists():
            console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
            return
        PinkitConfig().save(config_path, include_defaults=True)
        console.print(f"[green]Created config at {config_path}[/green]")


def cmd_cache_clear(args):
    """Delete the local snapshot."""
    store = SnapshotStore(get_config().cache_path())
    store.clear()
    if not args.quiet:
        console.print(f"[green]✓ Cleared cache in {store.cache_dir}[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pinkit",
        description="pinkit - Pinboard toolkit: offline search over your Pinboard bookmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pinkit sync
  pinkit search python
  pinkit search dtm --fuzzy
  pinkit tags rust
  pinkit add https://example.com --title "Example" --tags "web demo" --toread
  pinkit tag rename old-name new-name
  pinkit suggest https://example.com

Configuration:
  Config file: ~/.config/pinkit/config.toml or ./pinkit.toml
  Environment: PINKIT_API_TOKEN, PINKIT_CACHE_DIR, PINKIT_FUZZY_SEARCH
        """
    )

    # Global options
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("--cache-dir", help="Snapshot directory (default: ~/.cache/pinkit)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output", choices=["table", "json", "urls"],
                        help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    sync_parser = subparsers.add_parser("sync", help="Refresh the local snapshot")
    sync_parser.add_argument("-f", "--force", action="store_true",
                             help="Sync even if the cache is up to date")
    sync_parser.set_defaults(func=cmd_sync)

    search_parser = subparsers.add_parser("search", help="Search pins")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--fuzzy", action="store_true",
                               help="Match characters in order with gaps (dtm matches datetime)")
    search_parser.add_argument("--tags-only", action="store_true", help="Match tag text only")
    search_parser.add_argument("--limit", type=int, help="Maximum results")
    search_parser.set_defaults(func=cmd_search)

    tags_parser = subparsers.add_parser("tags", help="Search tags")
    tags_parser.add_argument("query", nargs="?", help="Search text (all tags if omitted)")
    tags_parser.add_argument("--fuzzy", action="store_true", help="Fuzzy matching")
    tags_parser.set_defaults(func=cmd_tags)

    add_parser = subparsers.add_parser("add", help="Add a pin")
    add_parser.add_argument("url", help="URL to bookmark")
    add_parser.add_argument("--title", help="Bookmark title")
    add_parser.add_argument("--tags", help="Tags, separated by spaces or commas")
    add_parser.add_argument("--description", help="Extended description")
    add_parser.add_argument("--private", action="store_true", help="Do not share the pin")
    add_parser.add_argument("--toread", action="store_true", help="Mark as to-read")
    add_parser.set_defaults(func=cmd_add)

    delete_parser = subparsers.add_parser("delete", help="Delete a pin")
    delete_parser.add_argument("url", help="URL of the pin")
    delete_parser.set_defaults(func=cmd_delete)

    tag_parser = subparsers.add_parser("tag", help="Tag management")
    tag_subparsers = tag_parser.add_subparsers(dest="tag_command", required=True)

    tag_rename = tag_subparsers.add_parser("rename", help="Rename a tag")
    tag_rename.add_argument("old_tag", help="Current tag name")
    tag_rename.add_argument("new_tag", help="New tag name")
    tag_rename.set_defaults(func=cmd_tag_rename)

    tag_delete = tag_subparsers.add_parser("delete", help="Delete a tag")
    tag_delete.add_argument("tag", help="Tag name")
    tag_delete.set_defaults(func=cmd_tag_delete)

    suggest_parser = subparsers.add_parser("suggest", help="Popular tags for a URL")
    suggest_parser.add_argument("url", help="URL to get suggestions for")
    suggest_parser.set_defaults(func=cmd_suggest)

    status_parser = subparsers.add_parser("status", help="Show snapshot status")
    status_parser.set_defaults(func=cmd_status)

    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("action", choices=["show", "set", "init"],
                               help="Config action")
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    cache_parser = subparsers.add_parser("cache", help="Snapshot maintenance")
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command", required=True)
    cache_clear = cache_subparsers.add_parser("clear", help="Delete the local snapshot")
    cache_clear.set_defaults(func=cmd_cache_clear)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = init_config(
            config_file=Path(args.config) if args.config else None,
            output_format=args.output,
            cache_dir=args.cache_dir,
        )
    except PinkitError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.log_level.upper(), logging.WARNING),
        format='%(levelname)s: %(message)s',
    )
    # urllib3 logs full request URLs, auth token included, at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO)

    if not args.output:
        args.output = config.output_format

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except PinkitError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
