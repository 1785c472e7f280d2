"""``kubelineage`` command: fetch a snapshot, build the NodeMap, print the tree.

Exit codes:
    0 -- lineage printed
    1 -- fetch failure, or render error (rows produced so far are printed)
    2 -- usage error or target not found
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from kubelineage import __version__
from kubelineage.collector.discovery import fetch_snapshot
from kubelineage.collector.snapshot import load_snapshot
from kubelineage.config import load_config
from kubelineage.errors import FetchError, RelationRuleError, TargetNotFoundError
from kubelineage.lineage.columns import OBJECT_COLUMN_DEFINITIONS
from kubelineage.lineage.nodemap import build_lineage
from kubelineage.lineage.printer import TreePrinter, format_json, format_table
from kubelineage.lineage.relations import DEFAULT_RELATION_RULES, RelationRule
from kubelineage.lineage.targets import resolve_target
from kubelineage.observability.logging import get_logger, setup_logging


def _load_rules(path: Path | None) -> list[RelationRule]:
    rules = list(DEFAULT_RELATION_RULES)
    if path is None:
        return rules
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(str(exc), param_hint="--relation-rules") from exc
    if not isinstance(document, list):
        raise click.BadParameter("must contain a JSON array of rules", param_hint="--relation-rules")
    try:
        rules.extend(RelationRule.from_dict(entry) for entry in document)
    except (RelationRuleError, AttributeError) as exc:
        raise click.BadParameter(str(exc), param_hint="--relation-rules") from exc
    return rules


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("resource")
@click.argument("name", required=False)
@click.option("-n", "--namespace", default="default", show_default=True, help="Namespace of the target object.")
@click.option("-A", "--all-namespaces", is_flag=True, help="Fetch objects from every namespace.")
@click.option("--context", default=None, help="Kubeconfig context to use.")
@click.option(
    "-f",
    "--from-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read objects from a `kubectl get -o json` snapshot instead of the cluster.",
)
@click.option(
    "--relation-rules",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with extra relation rules.",
)
@click.option("--show-group", is_flag=True, help="Always qualify names with their API group.")
@click.option("-d", "--depth", type=click.IntRange(min=0), default=0, help="Maximum depth to print (0 = unlimited).")
@click.option("-o", "--output", type=click.Choice(["table", "json"]), default="table", show_default=True)
@click.option("--no-headers", is_flag=True, help="Omit the header row in table output.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Override KUBELINEAGE_LOG_LEVEL.",
)
@click.version_option(__version__, prog_name="kubelineage")
def cli(
    resource: str,
    name: str | None,
    namespace: str,
    all_namespaces: bool,
    context: str | None,
    from_file: Path | None,
    relation_rules: Path | None,
    show_group: bool,
    depth: int,
    output: str,
    no_headers: bool,
    log_level: str | None,
) -> None:
    """Print the dependency lineage of a Kubernetes object.

    RESOURCE is KIND/NAME, or KIND followed by NAME. KIND may carry an API
    group (``service.serving.knative.dev``) to pick between same-named kinds.
    """
    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    setup_logging(log_level or config.log.level)
    log = get_logger("cli")

    rules = _load_rules(relation_rules)
    try:
        if from_file is not None:
            objects = load_snapshot(from_file)
        else:
            scope = None if all_namespaces else namespace
            objects = asyncio.run(fetch_snapshot(scope, context, config.fetch))
    except FetchError as exc:
        click.echo(f"error: {exc}", err=True)
        raise SystemExit(1) from exc

    node_map = build_lineage(objects, rules)
    log.info("lineage_built", nodes=len(node_map), diagnostics=len(node_map.diagnostics))
    for diagnostic in node_map.diagnostics:
        log.debug("lineage_diagnostic", kind=diagnostic.kind.value, uid=diagnostic.uid, message=diagnostic.message)

    try:
        target = resolve_target(node_map, resource, name, namespace)
    except TargetNotFoundError as exc:
        click.echo(f"error: {exc}", err=True)
        raise SystemExit(2) from exc

    printer = TreePrinter(
        node_map,
        show_group=show_group or config.render.show_group,
        max_traversal_depth=config.render.max_traversal_depth,
    )
    result = printer.render(target.uid, max_depth=depth)

    if output == "json":
        click.echo(format_json(result.rows, OBJECT_COLUMN_DEFINITIONS))
    else:
        click.echo(format_table(result.rows, OBJECT_COLUMN_DEFINITIONS, no_headers=no_headers))

    if result.error is not None:
        click.echo(f"error: {result.error}", err=True)
        raise SystemExit(1)
