"""Output formatters for stacks, events, drift reports and the tail stream."""

import io
import json
from collections.abc import Iterable
from datetime import datetime

from rich.console import Console
from rich.table import Table

from stackscope.models import (
    DriftReport,
    StackDetail,
    StackEvent,
    StackOutput,
    StackResource,
    StackSummary,
    TemplateValidation,
)
from stackscope.template import ResourceQuery

REDACTED = "[REDACTED]"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_WIDTH = 200

# Fixed column widths of the tail stream: timestamp, logical id, type, status.
TAIL_COLUMNS = (22, 40, 45, 30)


def format_timestamp(value: datetime | None) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else ""


def truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 1] + "…"


def _table(columns: Iterable[str], headers: bool) -> Table:
    table = Table(box=None, show_header=headers, header_style="bold", pad_edge=False)
    for column in columns:
        table.add_column(column, overflow="fold")
    return table


def _render(*renderables) -> str:
    """Render to plain text without writing to the terminal."""
    console = Console(
        record=True,
        file=io.StringIO(),
        width=CONSOLE_WIDTH,
        markup=False,
        highlight=False,
        emoji=False,
    )
    for renderable in renderables:
        console.print(renderable)
    text = console.export_text()
    return "\n".join(line.rstrip() for line in text.rstrip("\n").splitlines())


def format_stacks(stacks: list[StackSummary], *, headers: bool = True) -> str:
    table = _table(["NAME", "STATUS", "CREATED", "DESCRIPTION"], headers)
    for stack in stacks:
        table.add_row(
            stack.stack_name,
            stack.status,
            format_timestamp(stack.creation_time),
            stack.description,
        )
    return _render(table)


def format_stack_names(stacks: list[StackSummary]) -> str:
    return "\n".join(stack.stack_name for stack in stacks)


def format_stacks_json(stacks: list[StackSummary]) -> str:
    return json.dumps(
        [
            {
                "stack_name": s.stack_name,
                "stack_id": s.stack_id,
                "status": s.status,
                "creation_time": s.creation_time.isoformat() if s.creation_time else None,
                "last_updated_time": s.last_updated_time.isoformat() if s.last_updated_time else None,
                "description": s.description,
            }
            for s in stacks
        ],
        indent=2,
    )


def format_search_banner(stack_count: int, query: ResourceQuery) -> str:
    return f"Searching {stack_count} stacks for {query.describe()}..."


def format_no_match(query: ResourceQuery) -> str:
    return f"No stacks found containing {query.describe()}"


def format_events(events: list[StackEvent], *, headers: bool = True) -> str:
    table = _table(["TIMESTAMP", "LOGICAL ID", "TYPE", "STATUS", "REASON"], headers)
    for event in events:
        table.add_row(
            format_timestamp(event.timestamp),
            event.logical_id,
            event.resource_type,
            event.status,
            event.reason,
        )
    return _render(table)


def format_resources(resources: list[StackResource], *, headers: bool = True) -> str:
    table = _table(["LOGICAL ID", "PHYSICAL ID", "TYPE", "STATUS", "DRIFT"], headers)
    for resource in resources:
        table.add_row(
            resource.logical_id,
            resource.physical_id,
            resource.resource_type,
            resource.status,
            resource.drift_status,
        )
    return _render(table)


def _outputs_table(outputs: list[StackOutput], headers: bool) -> Table:
    table = _table(["KEY", "VALUE", "EXPORT NAME", "DESCRIPTION"], headers)
    for output in outputs:
        table.add_row(output.key, output.value, output.export_name, output.description)
    return table


def format_outputs(outputs: list[StackOutput], *, headers: bool = True) -> str:
    return _render(_outputs_table(outputs, headers))


def format_stack_detail(detail: StackDetail, *, headers: bool = True) -> str:
    """Render DescribeStacks output: metadata, then parameters, outputs, tags, capabilities."""
    fields = [
        ("Name", detail.stack_name),
        ("Stack ID", detail.stack_id),
        ("Status", detail.status),
        ("Status Reason", detail.status_reason),
        ("Created", format_timestamp(detail.creation_time)),
        ("Last Updated", format_timestamp(detail.last_updated_time)),
        ("Description", detail.description),
        ("Termination Protected", "true" if detail.termination_protection else "false"),
        ("IAM Role", detail.role_arn),
        ("Drift Status", detail.drift_status),
    ]
    # Optional fields are omitted rather than printed empty.
    always = {"Name", "Stack ID", "Status", "Created", "Termination Protected"}
    lines = [
        f"{label + ':':<22} {value}" for label, value in fields if value or label in always
    ]

    sections: list = []
    if detail.parameters:
        table = _table(["KEY", "VALUE", "RESOLVED VALUE"], headers)
        for p in detail.parameters:
            value = "<use-previous-value>" if p.use_previous_value else p.value
            table.add_row(p.key, value, p.resolved_value)
        sections.append(("Parameters:", table))
    if detail.outputs:
        sections.append(("Outputs:", _outputs_table(detail.outputs, headers)))
    if detail.tags:
        table = _table(["KEY", "VALUE"], headers)
        for key, value in detail.tags.items():
            table.add_row(key, value)
        sections.append(("Tags:", table))

    parts = ["\n".join(lines)]
    for title, table in sections:
        parts.append(f"{title}\n{_render(table)}")
    if detail.capabilities:
        parts.append(f"Capabilities: {', '.join(detail.capabilities)}")
    return "\n\n".join(parts)


def format_drift_started(detection_id: str) -> str:
    return f"Drift detection started (ID: {detection_id})"


def format_drift_report(report: DriftReport, *, headers: bool = True, redact: bool = False) -> str:
    """Status header, a summary table of drifted resources and per-property details."""
    run = report.run
    status = run.stack_status.value if run.stack_status else "UNKNOWN"
    lines = [
        f"Stack drift status: {status}",
        f"Drifted resources:  {run.drifted_resource_count or 0}",
        "",
    ]

    if not report.resource_drifts:
        lines.append("No drifted resources.")
        return "\n".join(lines)

    table = _table(["LOGICAL ID", "TYPE", "DRIFT STATUS", "PROPERTY DIFFS"], headers)
    for rd in report.resource_drifts:
        table.add_row(
            rd.logical_id,
            rd.resource_type,
            rd.status.value,
            f"{len(rd.property_diffs)} properties",
        )
    lines.append(_render(table))

    for rd in report.resource_drifts:
        if not rd.property_diffs:
            continue
        lines.append("")
        lines.append(f"{rd.logical_id} ({rd.resource_type}):")
        for pd in rd.property_diffs:
            expected = REDACTED if redact else pd.expected_value
            actual = REDACTED if redact else pd.actual_value
            lines.append(f"  {pd.property_path:<40} {pd.diff_type.value}")
            lines.append(f"    Expected: {expected}")
            lines.append(f"    Actual:   {actual}")

    return "\n".join(lines)


def format_drift_json(report: DriftReport, *, redact: bool = False) -> str:
    run = report.run
    return json.dumps(
        {
            "stack_name": run.stack_name,
            "stack_id": run.stack_id,
            "detection_id": run.detection_id,
            "status": run.stack_status.value if run.stack_status else None,
            "drifted_resource_count": run.drifted_resource_count or 0,
            "resources": [
                {
                    "logical_id": rd.logical_id,
                    "physical_id": rd.physical_id,
                    "resource_type": rd.resource_type,
                    "status": rd.status.value,
                    "property_diffs": [
                        {
                            "property_path": pd.property_path,
                            "difference_type": pd.diff_type.value,
                            "expected_value": REDACTED if redact else pd.expected_value,
                            "actual_value": REDACTED if redact else pd.actual_value,
                        }
                        for pd in rd.property_diffs
                    ],
                }
                for rd in report.resource_drifts
            ],
        },
        indent=2,
    )


def format_validation(result: TemplateValidation, *, headers: bool = True) -> str:
    parts = ["Template is valid ✓"]
    if result.description:
        parts[0] += f"\nDescription: {result.description}"
    if result.parameters:
        table = _table(["KEY", "DEFAULT VALUE", "NO ECHO", "DESCRIPTION"], headers)
        for p in result.parameters:
            table.add_row(p.key, p.default_value, "true" if p.no_echo else "false", p.description)
        parts.append(f"Parameters:\n{_render(table)}")
    if result.capabilities:
        text = f"Required Capabilities: {', '.join(result.capabilities)}"
        if result.capabilities_reason:
            text += f"\nCapabilities Reason: {result.capabilities_reason}"
        parts.append(text)
    return "\n\n".join(parts)


def format_template(body: str, *, pretty: bool = False) -> str:
    """Return the template body, re-indented when ``pretty`` and it is JSON."""
    if pretty:
        try:
            return json.dumps(json.loads(body), indent=2)
        except ValueError:
            pass  # YAML is printed as-is
    return body


def _tail_row(timestamp: str, logical_id: str, resource_type: str, status: str, reason: str) -> str:
    ts_w, id_w, type_w, status_w = TAIL_COLUMNS
    return (
        f"{timestamp:<{ts_w}} {truncate(logical_id, id_w):<{id_w}} "
        f"{truncate(resource_type, type_w):<{type_w}} {truncate(status, status_w):<{status_w}} {reason}"
    )


def format_tail_header() -> str:
    titles = _tail_row("TIMESTAMP", "LOGICAL ID", "TYPE", "STATUS", "REASON")
    rule = " ".join("─" * width for width in TAIL_COLUMNS) + " " + "─" * 6
    return f"{titles}\n{rule}"


def format_tail_line(event: StackEvent) -> str:
    return _tail_row(
        format_timestamp(event.timestamp),
        event.logical_id,
        event.resource_type,
        event.status,
        event.reason,
    ).rstrip()
