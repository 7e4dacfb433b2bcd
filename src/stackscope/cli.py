"""CLI entrypoint for stackscope."""

import logging
import sys
from contextlib import contextmanager, nullcontext
from pathlib import Path

import click
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console

from stackscope.aws.client import CloudFormationClient
from stackscope.detector import DriftOrchestrator
from stackscope.errors import MalformedFilterInput, OperationCancelled, StackscopeError
from stackscope.formatter import (
    format_drift_json,
    format_drift_report,
    format_drift_started,
    format_events,
    format_no_match,
    format_outputs,
    format_resources,
    format_search_banner,
    format_stack_detail,
    format_stack_names,
    format_stacks,
    format_stacks_json,
    format_tail_header,
    format_tail_line,
    format_template,
    format_validation,
)
from stackscope.models import DriftReport
from stackscope.options import (
    DEFAULT_DRIFT_POLL_INTERVAL,
    DEFAULT_DRIFT_TIMEOUT,
    DEFAULT_TAIL_INTERVAL,
    DriftOptions,
    GlobalOptions,
    QueryOptions,
    TailOptions,
)
from stackscope.query import filter_stacks
from stackscope.search import ResourceSearch
from stackscope.tailer import EventTailer
from stackscope.template import ResourceQuery, parse_property_filters
from stackscope.ticker import Ticker, cancel_on_signals

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    if not verbose:
        logging.getLogger("botocore").setLevel(logging.WARNING)


@contextmanager
def _reporting_errors(action: str):
    """Turn provider and stackscope errors into an error message and exit code 2."""
    try:
        yield
    except (ClientError, BotoCoreError, StackscopeError) as exc:
        logger.debug("%s failed", action, exc_info=True)
        click.echo(f"Error: {action}: {exc}", err=True)
        sys.exit(2)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-r", "--region", envvar="AWS_REGION", default=None, help="AWS region.")
@click.option("--no-headers", is_flag=True, help="Don't print table headers.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, region, no_headers, verbose):
    """Inspect and monitor AWS CloudFormation stacks."""
    _configure_logging(verbose)
    ctx.obj = GlobalOptions(region=region, show_headers=not no_headers)


@main.command("list")
@click.argument("name_filter", required=False, default="")
@click.option("-A", "--all", "show_all", is_flag=True, help="Show all stacks (overrides other status filters).")
@click.option("-C", "--complete", is_flag=True, help="Include *_COMPLETE stacks, DELETE_COMPLETE too.")
@click.option("-D", "--deleted", is_flag=True, help="Include DELETE_* stacks.")
@click.option("-P", "--in-progress", is_flag=True, help="Include *_IN_PROGRESS stacks.")
@click.option("-i", "--ignore-case", is_flag=True, help="Case-insensitive matching for every text filter.")
@click.option("--desc", "desc_contains", default="", help="Only stacks whose description contains this.")
@click.option("--no-desc", "desc_excludes", default="", help="Exclude stacks whose description contains this.")
@click.option("-1", "--names-only", is_flag=True, help="Print only stack names, one per line.")
@click.option("-t", "--type", "resource_type", default="", help="Resource type to search for (e.g. AWS::S3::Bucket).")
@click.option("-n", "--resource-name", default="", help="Resource logical ID substring to search for.")
@click.option(
    "-p",
    "--property",
    "properties",
    multiple=True,
    help="Resource property to match, KEY=VALUE or NESTED.KEY=VALUE. Repeatable.",
)
@click.option(
    "--max-concurrent",
    type=click.IntRange(1, 50),
    default=5,
    help="Max concurrent template fetches during a resource search.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.pass_obj
def list_stacks(
    opts: GlobalOptions,
    name_filter,
    show_all,
    complete,
    deleted,
    in_progress,
    ignore_case,
    desc_contains,
    desc_excludes,
    names_only,
    resource_type,
    resource_name,
    properties,
    max_concurrent,
    output_format,
):
    """List stacks, optionally searching their templates for resources.

    With --type, --resource-name or --property every candidate stack's
    deployed template is searched and only stacks with a matching resource
    are shown.
    """
    try:
        query = ResourceQuery(
            resource_type=resource_type,
            logical_id=resource_name,
            properties=parse_property_filters(properties),
            ignore_case=ignore_case,
        )
    except MalformedFilterInput as exc:
        raise click.BadParameter(str(exc), param_hint="--property") from exc

    options = QueryOptions(
        name_filter=name_filter,
        desc_contains=desc_contains,
        desc_excludes=desc_excludes,
        ignore_case=ignore_case,
        show_all=show_all,
        complete=complete,
        deleted=deleted,
        in_progress=in_progress,
    )

    client = CloudFormationClient(region=opts.region)
    with _reporting_errors("failed to list stacks"):
        stacks = client.list_stacks(options.status_filters(resource_search=query.active))
    stacks = filter_stacks(stacks, options)

    if query.active:
        if not stacks:
            click.echo("No stacks to search", err=True)
            sys.exit(1)
        status = (
            nullcontext()
            if names_only
            else Console(stderr=True).status(format_search_banner(len(stacks), query))
        )
        with status:
            stacks = ResourceSearch(client, max_concurrent=max_concurrent).search(stacks, query)
        if not stacks:
            if not names_only:
                click.echo(format_no_match(query))
            sys.exit(1)

    if names_only:
        if stacks:
            click.echo(format_stack_names(stacks))
        return

    if not stacks:
        click.echo("No stacks found", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(format_stacks_json(stacks))
    else:
        click.echo(format_stacks(stacks, headers=opts.show_headers))


@main.command()
@click.argument("stack_name")
@click.option("-l", "--limit", type=click.IntRange(min=0), default=0, help="Maximum number of events (0 = all).")
@click.pass_obj
def events(opts: GlobalOptions, stack_name, limit):
    """List events for a stack, newest first."""
    client = CloudFormationClient(region=opts.region)
    with _reporting_errors(f"failed to list events for stack {stack_name!r}"):
        stack_events = client.list_events(stack_name, limit=limit)

    if not stack_events:
        click.echo("No events found")
        return
    click.echo(format_events(stack_events, headers=opts.show_headers))


@main.command()
@click.argument("stack_name")
@click.pass_obj
def describe(opts: GlobalOptions, stack_name):
    """Show full metadata for a stack."""
    client = CloudFormationClient(region=opts.region)
    with _reporting_errors(f"failed to describe stack {stack_name!r}"):
        detail = client.describe_stack(stack_name)
    click.echo(format_stack_detail(detail, headers=opts.show_headers))


@main.command()
@click.argument("stack_name")
@click.pass_obj
def outputs(opts: GlobalOptions, stack_name):
    """Show outputs for a stack."""
    client = CloudFormationClient(region=opts.region)
    with _reporting_errors(f"failed to describe stack {stack_name!r}"):
        detail = client.describe_stack(stack_name)

    if not detail.outputs:
        click.echo("No outputs found")
        return
    click.echo(format_outputs(detail.outputs, headers=opts.show_headers))


@main.command()
@click.argument("stack_name")
@click.pass_obj
def resources(opts: GlobalOptions, stack_name):
    """List physical resources in a stack."""
    client = CloudFormationClient(region=opts.region)
    with _reporting_errors(f"failed to list resources for stack {stack_name!r}"):
        stack_resources = client.list_resources(stack_name)

    if not stack_resources:
        click.echo("No resources found")
        return
    click.echo(format_resources(stack_resources, headers=opts.show_headers))


@main.command()
@click.argument("stack_name")
@click.option("-w/-W", "--wait/--no-wait", default=True, help="Wait for drift detection to complete.")
@click.option(
    "--interval",
    type=click.FloatRange(min=1.0),
    default=DEFAULT_DRIFT_POLL_INTERVAL,
    help="Seconds between status polls.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=DEFAULT_DRIFT_TIMEOUT,
    help="Give up after this many seconds (0 = wait until interrupted).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.option("--redact-values", is_flag=True, help="Hide expected/actual property values.")
@click.pass_obj
def drift(opts: GlobalOptions, stack_name, wait, interval, timeout, output_format, redact_values):
    """Detect and show drift for a stack.

    Exits 0 when the stack is in sync and 1 when drift was found.
    """
    options = DriftOptions(wait=wait, poll_interval=interval, timeout=timeout or None)
    # Keep stdout clean for JSON output.
    progress_err = output_format == "json"
    client = CloudFormationClient(region=opts.region)

    def on_started(run):
        click.echo(format_drift_started(run.detection_id), err=progress_err)
        if wait:
            click.echo("Waiting", nl=False, err=progress_err)

    def on_poll(run):
        click.echo(".", nl=False, err=progress_err)

    with cancel_on_signals() as cancelled:
        orchestrator = DriftOrchestrator(client, options, ticker=Ticker(interval, cancelled))
        with _reporting_errors(f"drift detection for {stack_name!r}"):
            try:
                result = orchestrator.run(stack_name, on_started=on_started, on_poll=on_poll)
            except OperationCancelled:
                click.echo("\nStopped.", err=progress_err)
                return
            finally:
                if wait:
                    click.echo(err=progress_err)

    if not isinstance(result, DriftReport):
        click.echo("Use --wait to poll for results automatically.")
        return

    if output_format == "json":
        click.echo(format_drift_json(result, redact=redact_values))
    else:
        click.echo(format_drift_report(result, headers=opts.show_headers, redact=redact_values))
    sys.exit(1 if result.drifted else 0)


@main.command()
@click.argument("stack_name")
@click.option(
    "-s",
    "--interval",
    type=click.IntRange(min=1),
    default=int(DEFAULT_TAIL_INTERVAL),
    help="Polling interval in seconds.",
)
@click.pass_obj
def tail(opts: GlobalOptions, stack_name, interval):
    """Stream stack events in real time (Ctrl-C to stop)."""
    options = TailOptions(interval=interval, show_headers=opts.show_headers)
    client = CloudFormationClient(region=opts.region)

    def emit(event):
        click.echo(format_tail_line(event))

    with cancel_on_signals() as cancelled:
        tailer = EventTailer(client, options, ticker=Ticker(options.interval, cancelled))
        with _reporting_errors(f"failed to get initial events for {stack_name!r}"):
            initial = tailer.seed(stack_name)

        click.echo(f"Tailing events for stack {stack_name!r} (Ctrl-C to stop)...\n")
        if options.show_headers:
            click.echo(format_tail_header())
        if initial is not None:
            emit(initial)

        tailer.follow(stack_name, emit)

    click.echo("\nStopped.")


@main.command()
@click.argument("stack_name")
@click.option("-p", "--pretty", is_flag=True, help="Pretty-print JSON templates.")
@click.pass_obj
def template(opts: GlobalOptions, stack_name, pretty):
    """Print the deployed template for a stack."""
    client = CloudFormationClient(region=opts.region)
    with _reporting_errors(f"failed to get template for stack {stack_name!r}"):
        body = client.get_template(stack_name)
    click.echo(format_template(body, pretty=pretty), nl=pretty)


@main.command()
@click.argument("template_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def validate(opts: GlobalOptions, template_file: Path):
    """Validate a template file with CloudFormation."""
    body = template_file.read_text()
    client = CloudFormationClient(region=opts.region)
    with _reporting_errors("template validation failed"):
        result = client.validate_template(body)
    click.echo(format_validation(result, headers=opts.show_headers))
