"""Inspection commands: routes and derived schemas."""

import importlib
import json
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel

from crudforge.core.errors import HttpError
from crudforge.resource.resource import Resource
from crudforge.schema.builder import copy_schema
from crudforge.schema.flags import flag_paths

ACTIONS = ["create", "replace", "update", "view"]


def load_object(target: str) -> Any:
    """Import ``module.path:attribute``, with the cwd importable."""
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise click.BadParameter(
            f"Expected MODULE:ATTRIBUTE, got '{target}'", param_hint="TARGET"
        )

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import '{module_name}': {e}", param_hint="TARGET")

    obj: Any = module
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise click.BadParameter(
                f"'{module_name}' has no attribute '{attribute}'", param_hint="TARGET"
            ) from None
    return obj


def _as_resources(obj: Any) -> list[Resource]:
    if isinstance(obj, Resource):
        return [obj]
    if isinstance(obj, (list, tuple)) and all(isinstance(r, Resource) for r in obj):
        return list(obj)
    raise click.BadParameter(
        "TARGET must be a Resource or a list of Resources", param_hint="TARGET"
    )


@click.command()
@click.argument("target")
@click.option("--prefix", default="/api", show_default=True, help="Path prefix of mounted routes.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print routes as JSON.")
def routes(target: str, prefix: str, as_json: bool):
    """List the endpoints of TARGET (MODULE:RESOURCE or MODULE:RESOURCE_LIST)."""
    try:
        resources = _as_resources(load_object(target))
    except HttpError as e:
        click.echo(f"Error: {e.message}", err=True)
        raise SystemExit(1)

    prefix = prefix.rstrip("/")
    rows = []
    for resource in resources:
        for endpoint in resource.generate_endpoints():
            rows.append(
                {
                    "method": endpoint.method,
                    "path": prefix + endpoint.path,
                    "action": endpoint.action,
                    "resource": resource.resource_name,
                    "permission": f"{endpoint.action}.{resource.permission_name}",
                    "authentication": list(endpoint.authentication),
                }
            )

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        click.echo("No routes.")
        return

    for row in rows:
        auth = ", ".join(row["authentication"]) or "anonymous"
        click.echo(f"{row['method']:<7} {row['path']:<40} {row['action']:<8} [{auth}]")


@click.command()
@click.argument("target")
@click.option(
    "--action",
    type=click.Choice(ACTIONS),
    default=None,
    help="Print the schema derived for this action instead of the canonical one.",
)
@click.option("--flags", "show_flags", is_flag=True, default=False, help="Print flag paths.")
def schema(target: str, action: str | None, show_flags: bool):
    """Print the JSON schema of TARGET (MODULE:MODEL)."""
    model = load_object(target)
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise click.BadParameter("TARGET must be a pydantic model", param_hint="TARGET")

    if show_flags:
        click.echo(json.dumps(flag_paths(model), indent=2))
        return

    derived = copy_schema(action, model) if action else model
    click.echo(json.dumps(derived.model_json_schema(), indent=2))
