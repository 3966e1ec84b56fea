"""
CLI command implementations.

- validate: Check a session document
- explain: Explain query plans against the declared indexes
- advise: Recommend indexes for the workload

Each command returns the process exit code.
"""

import argparse
import dataclasses
import json
import logging
import sys

from ..catalog import IndexCatalog
from ..config import AdvisorSettings, CostModel
from ..errors import AdvisorBudgetExceededError
from ..loader import Session, load_session
from ..parallel import ParallelExplainer
from ..planner import IndexAdvisor, PlanEstimator
from ..report import (
    advice_to_document,
    export_advice_csv,
    export_advice_json,
    format_advice_console,
    format_explain_console,
    render_create_index,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_INPUT_ERROR = 2
EXIT_PARTIAL = 3


def _emit(text: str, output: str | None) -> None:
    if output:
        with open(output, 'w') as f:
            f.write(text + "\n")
        logger.info(f"Report written to {output}")
    else:
        print(text)


def _settings(args: argparse.Namespace) -> AdvisorSettings:
    settings = AdvisorSettings.from_env()
    overrides = {}
    if getattr(args, 'max_indexes', None) is not None:
        overrides['max_indexes'] = args.max_indexes
    if getattr(args, 'max_evaluations', None) is not None:
        overrides['max_evaluations'] = args.max_evaluations
    if getattr(args, 'workers', None) is not None:
        overrides['workers'] = args.workers
    return dataclasses.replace(settings, **overrides)


def cmd_validate(args: argparse.Namespace) -> int:
    """
    Validate a session document

    Args:
        args: Parsed command-line arguments
    """
    session = load_session(args.workload, strict=args.strict)

    print(
        f"OK: collection '{session.registry.collection}' with "
        f"{len(session.registry)} field(s), {len(session.catalog)} index(es), "
        f"{len(session.workload)} query(ies)"
    )
    for entry in session.workload:
        if entry.shape.flags:
            print(f"  flagged {entry.shape.name}: {', '.join(entry.shape.flags)}")
    return EXIT_OK


def cmd_explain(args: argparse.Namespace) -> int:
    """
    Explain the plans of the session's queries

    Args:
        args: Parsed command-line arguments
    """
    session: Session = load_session(args.workload)
    settings = _settings(args)

    if args.query:
        try:
            shapes = [session.query(args.query).shape]
        except KeyError as e:
            logger.error(str(e))
            print(f"Error: no query named '{args.query}'", file=sys.stderr)
            return EXIT_INPUT_ERROR
    else:
        shapes = session.workload.shapes()

    estimator = PlanEstimator(session.registry, session.catalog, CostModel.from_env())
    results = ParallelExplainer(max_workers=settings.workers).explain_all(estimator, shapes)
    records = [record for record in results['results'] if record is not None]

    if args.format == 'json':
        text = json.dumps(
            {
                'collection': session.registry.collection,
                'plans': records,
                'errors': results['errors'],
            },
            indent=2,
        )
    else:
        text = format_explain_console(records)
        for error in results['errors']:
            text += f"\nFailed: {error['query']}: {error['type']}: {error['error']}"

    _emit(text, args.output)
    return EXIT_FAILURES if results['failed'] else EXIT_OK


def cmd_advise(args: argparse.Namespace) -> int:
    """
    Recommend indexes for the session's workload

    Args:
        args: Parsed command-line arguments
    """
    session = load_session(args.workload)
    settings = _settings(args)
    collection = session.registry.collection

    advisor = IndexAdvisor.from_settings(session.registry, settings, CostModel.from_env())
    baseline = IndexCatalog(session.registry).seal() if args.ignore_existing else session.catalog

    exit_code = EXIT_OK
    try:
        result = advisor.recommend(session.workload, baseline)
    except AdvisorBudgetExceededError as e:
        logger.warning(str(e))
        print(f"Warning: {e}; showing partial result", file=sys.stderr)
        result = e.result
        exit_code = EXIT_PARTIAL

    if args.format == 'csv':
        export_advice_csv(result, args.output)
        logger.info(f"CSV report written to {args.output}")
    elif args.format == 'json' and args.output:
        export_advice_json(result, collection, args.output)
        logger.info(f"JSON report written to {args.output}")
    elif args.format == 'json':
        print(json.dumps(advice_to_document(result, collection), indent=2))
    else:
        _emit(format_advice_console(result, collection), args.output)

    if args.show_commands and args.format != 'console':
        for index in result.indexes:
            print(render_create_index(index, collection))

    return exit_code
