"""
Command-line argument parser configuration.

Sets up the argument parser for the index-advisor CLI, defining all
commands and their options.
"""

import argparse


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="index-advisor",
        description="Query-pattern index advisor for document collections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check a session document without evaluating anything
  index-advisor validate --workload tickets.yml

  # Explain every query of the workload against the declared indexes
  index-advisor explain --workload tickets.yml

  # Explain one query as JSON
  index-advisor explain --workload tickets.yml --query ticket_listing --format json

  # Recommend at most two indexes and print createIndex commands
  index-advisor advise --workload tickets.yml --max-indexes 2 --show-commands

  # Write the recommendation report to a file
  index-advisor advise --workload tickets.yml --format json --output advice.json
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL or WARNING)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON (default: LOG_JSON)'
    )
    parser.add_argument(
        '--trace-console',
        action='store_true',
        help='Export tracing spans to the console (OTLP export follows OTLP_ENDPOINT)'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while the command runs'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Validate command ==========
    validate_parser = subparsers.add_parser('validate', help='Validate a session document')
    validate_parser.add_argument(
        '--workload',
        required=True,
        help='Session document (YAML or JSON)'
    )
    validate_parser.add_argument(
        '--strict',
        action='store_true',
        help='Reject queries no single index can serve instead of flagging them'
    )

    # ========== Explain command ==========
    explain_parser = subparsers.add_parser('explain', help='Explain query plans')
    explain_parser.add_argument(
        '--workload',
        required=True,
        help='Session document (YAML or JSON)'
    )
    explain_parser.add_argument(
        '--query',
        help='Only explain the query with this name'
    )
    explain_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    explain_parser.add_argument(
        '--workers',
        type=int,
        help='Worker threads (default: ADVISOR_WORKERS or 4)'
    )
    explain_parser.add_argument(
        '--output',
        help='Output file path (default: stdout)'
    )

    # ========== Advise command ==========
    advise_parser = subparsers.add_parser('advise', help='Recommend indexes for a workload')
    advise_parser.add_argument(
        '--workload',
        required=True,
        help='Session document (YAML or JSON)'
    )
    advise_parser.add_argument(
        '--max-indexes',
        type=int,
        help='Maximum indexes to recommend (default: ADVISOR_MAX_INDEXES or 3)'
    )
    advise_parser.add_argument(
        '--max-evaluations',
        type=int,
        help='Candidate evaluation budget (default: ADVISOR_MAX_EVALUATIONS or 1000)'
    )
    advise_parser.add_argument(
        '--ignore-existing',
        action='store_true',
        help='Advise from scratch instead of on top of the declared indexes'
    )
    advise_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )
    advise_parser.add_argument(
        '--output',
        help='Output file path (required for csv)'
    )
    advise_parser.add_argument(
        '--show-commands',
        action='store_true',
        help='Also print createIndex commands for the recommendations'
    )

    return parser
