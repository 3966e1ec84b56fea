"""
Report formatting and export utilities.

Renders explain records and advisor results as console text, JSON or CSV,
and turns index definitions into ``createIndex`` shell commands.
"""

import csv
import json
from datetime import UTC, datetime
from typing import Any

from ..catalog import IndexDefinition
from ..loader import dump_index
from ..planner.advisor import AdvisorResult


def render_create_index(definition: IndexDefinition, collection: str) -> str:
    """
    Render a ``db.<collection>.createIndex(...)`` shell command.

    Args:
        definition: Index to create
        collection: Target collection name

    Returns:
        Command as a single line of shell syntax
    """
    options: dict[str, Any] = {"name": definition.name}
    if definition.unique:
        options["unique"] = True
    if definition.sparse:
        options["sparse"] = True
    if definition.weights:
        options["weights"] = dict(definition.weights)
    if definition.expire_after_seconds is not None:
        options["expireAfterSeconds"] = definition.expire_after_seconds

    return (
        f"db.{collection}.createIndex("
        f"{json.dumps(definition.key_pattern)}, {json.dumps(options)})"
    )


def advice_to_document(result: AdvisorResult, collection: str) -> dict[str, Any]:
    """Build a JSON-serializable report from an advisor result."""
    return {
        "collection": collection,
        "timestamp": datetime.now(UTC).isoformat(),
        "partial": result.partial,
        "evaluations": result.evaluations,
        "baselineCost": result.baseline_cost,
        "totalCost": result.total_cost,
        "improvement": round(result.improvement, 4),
        "recommendations": [
            {**dump_index(index), "command": render_create_index(index, collection)}
            for index in result.indexes
        ],
        "queries": [
            {
                "query": entry.shape.name,
                "weight": entry.weight,
                "scanKind": decision.scan_kind.value,
                "indexUsed": decision.index_name,
                "inMemorySort": decision.in_memory_sort,
                "estimatedExamined": decision.estimated_examined,
            }
            for entry, decision in result.decisions
        ],
    }


def export_advice_json(result: AdvisorResult, collection: str, output_path: str) -> None:
    with open(output_path, "w") as f:
        json.dump(advice_to_document(result, collection), f, indent=2)


def export_advice_csv(result: AdvisorResult, output_path: str) -> None:
    """
    Export per-query plans under the recommended index set to CSV.

    Args:
        result: Advisor result
        output_path: Path to output file
    """
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([
            "Query",
            "Weight",
            "Scan Kind",
            "Index Used",
            "In-Memory Sort",
            "Estimated Examined",
        ])
        for entry, decision in result.decisions:
            writer.writerow([
                entry.shape.name or "",
                entry.weight,
                decision.scan_kind.value,
                decision.index_name or "",
                decision.in_memory_sort,
                decision.estimated_examined,
            ])


def format_advice_console(result: AdvisorResult, collection: str) -> str:
    """Format an advisor result for terminal output."""
    lines = []

    lines.append("=" * 80)
    lines.append("INDEX RECOMMENDATIONS" + (" (PARTIAL)" if result.partial else ""))
    lines.append("=" * 80)
    lines.append(f"Collection: {collection}")
    lines.append(f"Candidate Evaluations: {result.evaluations}")
    lines.append(f"Weighted Cost (baseline): {result.baseline_cost:,.0f}")
    lines.append(f"Weighted Cost (with recommendations): {result.total_cost:,.0f}")
    lines.append(f"Improvement: {result.improvement:.1%}")
    lines.append("")

    lines.append("RECOMMENDED INDEXES")
    lines.append("-" * 80)
    if result.indexes:
        for i, index in enumerate(result.indexes, 1):
            lines.append(f"{i}. {index.name}")
            lines.append(f"   {render_create_index(index, collection)}")
    else:
        lines.append("None: existing indexes already serve this workload")
    lines.append("")

    if result.decisions:
        lines.append("QUERY PLANS")
        lines.append("-" * 80)
        for entry, decision in result.decisions:
            sort_note = ", in-memory sort" if decision.in_memory_sort else ""
            lines.append(
                f"{entry.shape.name or '<anonymous>'} (weight {entry.weight:g}): "
                f"{decision.scan_kind.value} via {decision.index_name or 'no index'}, "
                f"~{decision.estimated_examined:,} examined{sort_note}"
            )
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)


def format_explain_console(records: list[dict[str, Any]]) -> str:
    """Format explain records for terminal output."""
    lines = []

    lines.append("=" * 80)
    lines.append("QUERY PLANS")
    lines.append("=" * 80)

    for record in records:
        shape = record["queryShape"]
        lines.append(f"Query: {shape.get('name') or '<anonymous>'}")
        lines.append(f"  Scan Kind: {record['scanKind']}")
        lines.append(f"  Index Used: {record['indexUsed'] or 'none'}")
        lines.append(f"  In-Memory Sort: {'yes' if record['inMemorySort'] else 'no'}")
        lines.append(f"  Estimated Examined: {record['estimatedExamined']:,}")
        if shape.get("flags"):
            lines.append(f"  Flags: {', '.join(shape['flags'])}")
        if record["rejectedPlans"]:
            rejected = ", ".join(plan["indexUsed"] for plan in record["rejectedPlans"])
            lines.append(f"  Rejected Plans: {rejected}")
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)
