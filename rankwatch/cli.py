import argparse


def _add_group_arg(parser, required: bool = True) -> None:
    parser.add_argument(
        "-g",
        "--group",
        required=required,
        help="Chat group id the command acts on.",
    )


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apex rank watch runner.")
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config.json (default: $RANKWATCH_CONFIG or ./config.json).",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="API key for the stats bridge, overrides the config file.",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding groups.json, overrides the config file.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write notifications to the log instead of sending them to chat.",
    )
    parser.add_argument(
        "--tail-logs",
        action="store_true",
        help="Tail the log file instead of running a command.",
    )
    parser.add_argument(
        "--tail-lines",
        type=int,
        default=100,
        help="How many recent lines to print before following logs (default: 100).",
    )
    parser.add_argument(
        "--no-follow",
        action="store_true",
        help="When used with --tail-logs, print lines and exit without follow mode.",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Start the periodic rank watcher.")

    query_parser = subparsers.add_parser("query", help="Show a player's current rank.")
    query_parser.add_argument("player", help="In-game player name.")

    watch_parser = subparsers.add_parser("watch", help="Track a player in a group.")
    watch_parser.add_argument("player", help="In-game player name.")
    _add_group_arg(watch_parser)

    list_parser = subparsers.add_parser("list", help="List players tracked in a group.")
    _add_group_arg(list_parser)

    remove_parser = subparsers.add_parser("remove", help="Stop tracking a player in a group.")
    remove_parser.add_argument("player", help="In-game player name.")
    _add_group_arg(remove_parser)

    test_parser = subparsers.add_parser("test", help="Send a test notification.")
    _add_group_arg(test_parser, required=False)

    subparsers.add_parser("help", help="Show usage text.")
    return parser


def config_overrides(cli_args) -> dict:
    """Map CLI flags onto config.json option names."""
    return {
        "apiKey": cli_args.api_key,
        "dataDirectory": cli_args.data_dir,
    }
