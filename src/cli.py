"""CLI entry point for ZimEstimate MCP."""

import argparse
import asyncio
import json
import sys
from pathlib import Path


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="zimestimate",
        description="ZimEstimate MCP - Floor plans, material estimates and project budgets",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the MCP server")
    serve_parser.add_argument(
        "--config-dir",
        type=str,
        help="Path to config directory",
    )

    # estimate command
    estimate_parser = subparsers.add_parser("estimate", help="Estimate wall materials")
    estimate_subparsers = estimate_parser.add_subparsers(dest="estimate_type", help="Estimate type")

    # estimate room
    room_parser = estimate_subparsers.add_parser("room", help="Estimate bricks and cement for one room")
    room_parser.add_argument("--width", type=float, required=True, help="Room width in meters")
    room_parser.add_argument("--length", type=float, required=True, help="Room length in meters")
    room_parser.add_argument("--doors", type=int, default=1, help="Number of doors (default: 1)")
    room_parser.add_argument("--windows", type=int, default=1, help="Number of windows (default: 1)")
    room_parser.add_argument(
        "--material",
        type=str,
        help="Wall material id (default: common brick)",
    )
    room_parser.add_argument(
        "--wastage",
        type=float,
        default=10.0,
        help="Wastage percent (default: 10)",
    )

    # estimate quick
    quick_parser = estimate_subparsers.add_parser("quick", help="Estimate a whole house from its area")
    quick_parser.add_argument("--area", type=float, required=True, help="Total floor area in m2")
    quick_parser.add_argument("--rooms", type=int, required=True, help="Number of rooms")
    quick_parser.add_argument("--windows", type=int, default=0, help="Number of windows")
    quick_parser.add_argument("--doors", type=int, default=0, help="Number of doors")
    quick_parser.add_argument(
        "--wastage",
        type=float,
        default=10.0,
        help="Wastage percent (default: 10)",
    )

    # prices command
    prices_parser = subparsers.add_parser("prices", help="Price feed utilities")
    prices_subparsers = prices_parser.add_subparsers(dest="prices_action", help="Prices action")

    # prices import
    import_parser = prices_subparsers.add_parser("import", help="Import prices from configured feeds")
    import_parser.add_argument(
        "--feed",
        type=str,
        help="Only import this feed id",
    )
    import_parser.add_argument(
        "--config-dir",
        type=str,
        help="Path to config directory",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Configuration utilities")
    config_subparsers = config_parser.add_subparsers(dest="config_action", help="Config action")

    # config validate
    validate_parser = config_subparsers.add_parser("validate", help="Validate configuration")
    validate_parser.add_argument(
        "--config-dir",
        type=str,
        help="Path to config directory",
    )

    # config init
    init_parser = config_subparsers.add_parser("init", help="Create example config files")
    init_parser.add_argument(
        "--config-dir",
        type=str,
        default="./config",
        help="Path to config directory (default: ./config)",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        from main import main as serve_main
        asyncio.run(serve_main(args.config_dir))

    elif args.command == "estimate":
        if args.estimate_type is None:
            estimate_parser.print_help()
            sys.exit(1)
        run_estimate_command(args)

    elif args.command == "prices":
        if args.prices_action is None:
            prices_parser.print_help()
            sys.exit(1)
        results = asyncio.run(run_price_import(args))
        if any("error" in r for r in results):
            sys.exit(1)

    elif args.command == "config":
        if args.config_action is None:
            config_parser.print_help()
            sys.exit(1)
        if not run_config_command(args):
            sys.exit(1)


def run_estimate_command(args: argparse.Namespace) -> None:
    """Run estimate commands and print the result as JSON."""
    from estimation import estimate_room, quick_estimate
    from models.room import DEFAULT_MATERIAL_ID, RoomInstance

    try:
        if args.estimate_type == "room":
            room = RoomInstance(
                id="room",
                type="custom",
                label="Room",
                width=args.width,
                length=args.length,
                doors=args.doors,
                windows=args.windows,
                material_id=args.material or DEFAULT_MATERIAL_ID,
            )
            result = estimate_room(room, args.wastage).to_dict()
        else:
            result = quick_estimate(
                args.area,
                args.rooms,
                windows=args.windows,
                doors=args.doors,
                wastage_percent=args.wastage,
            ).to_dict()
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=2))


async def run_price_import(args: argparse.Namespace) -> list[dict]:
    """Import configured price feeds into the local database."""
    from config import load_config, load_secrets
    from persistence import close_store, get_store
    from services.price_feeds import PriceFeedClient
    from utils.errors import PriceFeedError

    cfg_path = Path(args.config_dir) if args.config_dir else None
    config = load_config(cfg_path)
    secrets = load_secrets(cfg_path)

    if not config.pricing.feeds:
        print("⚠ No price feeds configured")
        return []

    store = await get_store(config.storage.db_path)
    client = PriceFeedClient(store, config.pricing, secrets)
    try:
        if args.feed:
            try:
                result = await client.import_feed(client.get_feed(args.feed))
                results = [result.to_dict()]
            except PriceFeedError as e:
                results = [{"feed_id": args.feed, "error": str(e)}]
        else:
            results = await client.import_all()
    finally:
        await client.close()
        await close_store()

    for result in results:
        if "error" in result:
            print(f"✗ {result['feed_id']}: {result['error']}")
        else:
            print(
                f"✓ {result['feed_id']}: {result['recorded']} prices recorded "
                f"({result['pending_review']} pending review, {result['skipped']} skipped)"
            )
    return results


def run_config_command(args: argparse.Namespace) -> bool:
    """Run config commands."""
    if args.config_action == "validate":
        from config_utils import validate_config
        return validate_config(args.config_dir)

    elif args.config_action == "init":
        from config_utils import init_config
        init_config(args.config_dir)
    return True


if __name__ == "__main__":
    main()
