"""
Command-line interface for the index advisor.

Available commands:
- validate: Check a session document
- explain: Explain query plans
- advise: Recommend indexes for a workload
"""

import os
import sys

from utils.logging import configure_from_env, get_logger
from utils.metrics import start_metrics_server
from utils.tracing import initialize_tracing, shutdown_tracing

from ..errors import InputError
from .commands import cmd_advise, cmd_explain, cmd_validate
from .parser import create_parser

logger = get_logger(__name__)

DEFAULT_LOG_LEVEL = "WARNING"


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the index-advisor CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_env(
        default_level=DEFAULT_LOG_LEVEL,
        level=args.log_level,
        json_format=True if args.log_json else None,
    )
    if args.trace_console or os.getenv("OTLP_ENDPOINT"):
        initialize_tracing(console_export=args.trace_console)
    if args.metrics_port is not None:
        start_metrics_server(args.metrics_port)

    if args.command == 'advise' and args.format == 'csv' and not args.output:
        parser.error("--output is required for csv format")

    commands = {
        'validate': cmd_validate,
        'explain': cmd_explain,
        'advise': cmd_advise,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except (InputError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        shutdown_tracing()


__all__ = [
    'main',
    'cmd_validate',
    'cmd_explain',
    'cmd_advise',
    'create_parser',
]


if __name__ == '__main__':
    sys.exit(main())
