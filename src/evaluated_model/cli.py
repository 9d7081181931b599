from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import click
import yaml

from .builder import EvaluatedModelBuilder
from .enrichment import MissingPackageError
from .excludes import generate_scope_excludes
from .findings import ProximityFindingsMatcher
from .loader import ResultLoadError, load_repository_configuration, load_resolutions, load_result
from .reporting import write_report
from .resolutions import DefaultResolutionProvider
from .serialization import ModelDecodeError
from .types_model import EvaluatedModel


@click.group()
def main() -> None:
    """Evaluated model CLI."""


@main.command()
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--resolutions",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="Additional resolutions YAML file (defaults to EVALUATED_MODEL_RESOLUTIONS if set).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "html"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format: the serialized model or a web-app page embedding it.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write the report to a file instead of stdout.",
)
@click.option(
    "--match-tolerance",
    type=int,
    help="Line tolerance when attributing copyrights to licenses; defaults to EVALUATED_MODEL_MATCH_TOLERANCE or 5.",
)
def evaluate(
    result_file: str,
    resolutions: Optional[str],
    fmt: str,
    output: Optional[str],
    match_tolerance: Optional[int],
) -> None:
    """Build the evaluated model of an analysis result."""

    resolutions_path = resolutions or os.environ.get("EVALUATED_MODEL_RESOLUTIONS")

    try:
        result = load_result(Path(result_file))
        provider = DefaultResolutionProvider(result.get_resolutions())
        if resolutions_path:
            provider.add(load_resolutions(Path(resolutions_path)))
        builder = EvaluatedModelBuilder(
            result, resolution_provider=provider, matcher=ProximityFindingsMatcher(match_tolerance)
        )
        model = builder.add_result().build()
    except (ResultLoadError, MissingPackageError, OSError) as exc:
        click.echo(f"Unable to build evaluated model: {exc}", err=True)
        raise SystemExit(1)

    if builder.skipped_references:
        click.echo(
            f"Skipped {len(builder.skipped_references)} dependency reference(s) to unknown packages:", err=True
        )
        for skipped in builder.skipped_references:
            click.echo(f"  {skipped.project} [{skipped.scope}] -> {skipped.id}", err=True)

    try:
        rendered = write_report(model, fmt, Path(output) if output else None)
    except OSError as exc:
        click.echo(f"Unable to write report: {exc}", err=True)
        raise SystemExit(1)
    if not output:
        click.echo(rendered)


@main.command()
@click.argument("model_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
def inspect(model_file: str) -> None:
    """Load a serialized evaluated model and summarize it."""

    try:
        model = EvaluatedModel.from_file(model_file)
    except ModelDecodeError as exc:
        click.echo(f"Unable to load evaluated model: {exc}", err=True)
        raise SystemExit(1)

    projects = [pkg for pkg in model.packages if pkg.is_project]
    click.echo(f"Projects: {len(projects)}")
    click.echo(f"Packages: {len(model.packages) - len(projects)}")
    click.echo(f"Scan results: {len(model.scan_results)}")
    click.echo(f"Issues: {len(model.issues)} ({sum(1 for i in model.issues if not i.is_resolved)} unresolved)")
    click.echo(
        f"Rule violations: {len(model.violations)} "
        f"({sum(1 for v in model.violations if not v.is_resolved)} unresolved)"
    )
    click.echo("Declared licenses:")
    for license_id, count in model.declared_license_stats.items():
        click.echo(f"  {license_id}: {count}")
    click.echo("Detected licenses:")
    for license_id, count in model.detected_license_stats.items():
        click.echo(f"  {license_id}: {count}")


@main.command("generate-scope-excludes")
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--repository-configuration-file",
    required=True,
    type=click.Path(dir_okay=False, path_type=str),
    help="Repository configuration YAML whose scope excludes are replaced.",
)
def generate_scope_excludes_command(result_file: str, repository_configuration_file: str) -> None:
    """Write the default scope excludes of the result's package managers into a repository configuration."""

    config_path = Path(repository_configuration_file)
    try:
        result = load_result(Path(result_file))
        config = load_repository_configuration(config_path) if config_path.exists() else None
    except ResultLoadError as exc:
        click.echo(f"Unable to generate scope excludes: {exc}", err=True)
        raise SystemExit(1)

    config = config or result.repository_config
    config.excludes.scopes = generate_scope_excludes(result)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.safe_dump(config.as_dict(), sort_keys=False), encoding="utf-8")
    click.echo(f"Wrote {len(config.excludes.scopes)} scope exclude(s) to {config_path}")


if __name__ == "__main__":
    main()
