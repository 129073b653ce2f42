"""Output builders for on-call reports and policy exports."""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Sequence
from pathlib import Path

import typer

from pagerduty_cli.models import EscalationPolicy
from pagerduty_cli.tree import TreeNode, render_tree

logger = logging.getLogger(__name__)

CSV_HEADER = ["Escalation Policy ID", "Escalation Policy", "depth", "name", "email"]


def filter_policies(
    policies: Sequence[EscalationPolicy], needle: str | None
) -> list[EscalationPolicy]:
    """Keep policies whose name contains ``needle``, ignoring case."""
    if not needle:
        return list(policies)
    needle = needle.lower()
    return [p for p in policies if needle in p.name.lower()]


def build_tree_output(policies: Sequence[EscalationPolicy]) -> str:
    """Render policies as a tree of policy → Oncalls → levels.

    Args:
        policies: Policies in display order. Order is kept as given.

    Returns:
        The tree text, or an empty string when there are no policies.
    """
    roots: list[TreeNode] = []
    for policy in policies:
        root = TreeNode(f"Escalation Policy - {policy.name}")
        oncalls = root.add("Oncalls")
        for level in policy.levels:
            names = ", ".join(person.name for person in level.people)
            oncalls.add(f"Level {level.index} - {names}")
        roots.append(root)
    return render_tree(roots)


def build_json_output(policies: Sequence[EscalationPolicy]) -> str:
    """One JSON object per policy, level and person."""
    rows = [
        {
            "id": policy.id,
            "escalationPolicy": policy.name,
            "depth": level.index,
            "userName": person.name,
            "userEmail": person.email,
        }
        for policy in policies
        for level in policy.levels
        for person in level.people
    ]
    return json.dumps(rows, indent=2)


def build_csv_output(policies: Sequence[EscalationPolicy]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for policy in policies:
        for level in policy.levels:
            for person in level.people:
                writer.writerow(
                    [policy.id, policy.name, level.index, person.name, person.email]
                )
    return output.getvalue()


def build_tfstate_export(policies: Sequence[EscalationPolicy]) -> dict:
    """Map each policy name to its id under ``escalation_policies``.

    Keys follow input order. When two policies share a name the later id
    replaces the earlier one.
    """
    mapping: dict[str, str] = {}
    for policy in policies:
        previous = mapping.get(policy.name)
        if previous is not None and previous != policy.id:
            logger.warning(
                "Duplicate policy name %r: %s replaces %s",
                policy.name,
                policy.id,
                previous,
            )
        mapping[policy.name] = policy.id
    return {"escalation_policies": mapping}


def build_export_output(policies: Sequence[EscalationPolicy]) -> str:
    return json.dumps(build_tfstate_export(policies), indent=2)


def write_output(dest: str, contents: str) -> None:
    """Write ``contents`` to ``dest``; ``-`` means standard output."""
    if dest == "-":
        typer.echo(contents)
        return
    Path(dest).write_text(contents + "\n", encoding="utf-8")
    logger.info("Wrote %s", dest)
