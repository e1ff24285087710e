"""
Command Line Interface for KDesc.
"""
import os
import sys
import click
from ..PARSERS.manifest_parser import ManifestParser
from ..PARSERS.values_parser import ValuesParser
from ..MODELS.settings import load_settings
from ..VALIDATORS.manifest_validator import ManifestValidator
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..MANAGERS.desired_state import DesiredStateStore
from ..MANAGERS.apply_manager import ApplyManager
from ..CONVERTERS.to_yaml import ManifestSerializer
from ..CONVERTERS.to_report import ReportRenderer
from ..UTILS.logging_setup import setup_logging
from ..errors import KdescError, ManifestParseError, ManifestValidationError


@click.group()
@click.option('--file', '-f', default='manifest.yaml', help='Manifest file path')
@click.option('--values', 'values_files', multiple=True, help='dotenv file with substitution values')
@click.option('--set', 'overrides', multiple=True, help='Substitution value as KEY=VALUE')
@click.option('--config', default=None, help='Configuration file (default: kdesc.yml if present)')
@click.option('--verbose', '-v', count=True, help='Increase log verbosity')
@click.pass_context
def cli(ctx, file, values_files, overrides, config, verbose):
    """
    KDesc - Kubernetes deployment descriptor interpreter.

    Validates Service, Deployment and Ingress manifests and tracks
    their desired state locally.
    """
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    ctx.obj['values_files'] = values_files
    ctx.obj['overrides'] = overrides
    try:
        ctx.obj['settings'] = load_settings(config)
    except KdescError as e:
        _fail(str(e))


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load_manifest(ctx):
    """
    Parses the manifest named on the command line, exiting on failure.
    """
    file = ctx.obj['file']
    if not os.path.exists(file):
        _fail(f"{file} not found.")

    settings = ctx.obj['settings']
    try:
        context = ValuesParser.build_context(ctx.obj['values_files'], ctx.obj['overrides'])
        return ManifestParser(context=context, settings=settings).parse(file)
    except ManifestParseError as e:
        click.echo(f"Error: {e}", err=True)
        for issue in e.issues:
            click.echo(f"  {issue}", err=True)
        sys.exit(1)
    except KdescError as e:
        _fail(str(e))


def _store(ctx, state):
    path = state or ctx.obj['settings'].state_file
    try:
        return DesiredStateStore(path).load()
    except KdescError as e:
        _fail(str(e))


@cli.command()
@click.option('--strict', is_flag=True, help='Fail on warnings too')
@click.pass_context
def validate(ctx, strict):
    """Validate the manifest."""
    manifest = _load_manifest(ctx)
    settings = ctx.obj['settings']
    if strict:
        settings = settings.model_copy(update={'strict': True})

    validator = ManifestValidator(settings)
    report = validator.validate(manifest)
    click.echo(ReportRenderer().render_validation(report))
    if not validator.passes(report):
        sys.exit(1)


@cli.command()
@click.pass_context
def plan(ctx):
    """Show the order resources are applied in."""
    manifest = _load_manifest(ctx)
    try:
        order = DependencyResolver().resolve_order(manifest)
    except KdescError as e:
        _fail(str(e))
    click.echo(ReportRenderer().render_plan(order))


@cli.command()
@click.pass_context
def render(ctx):
    """Print the manifest after substitution."""
    manifest = _load_manifest(ctx)
    click.echo(ManifestSerializer().to_yaml(manifest), nl=False)


@cli.command()
@click.option('--state', default=None, help='State file (default from configuration)')
@click.option('--dry-run', is_flag=True, help='Show changes without recording them')
@click.pass_context
def apply(ctx, state, dry_run):
    """Record the manifest as desired state."""
    manifest = _load_manifest(ctx)
    manager = ApplyManager(_store(ctx, state), ctx.obj['settings'])
    renderer = ReportRenderer()
    try:
        result = manager.apply(manifest, dry_run=dry_run)
    except ManifestValidationError as e:
        click.echo(renderer.render_validation(e.report), err=True)
        _fail(str(e))
    except KdescError as e:
        _fail(str(e))
    click.echo(renderer.render_changes(result))


@cli.command()
@click.option('--state', default=None, help='State file (default from configuration)')
@click.option('--dry-run', is_flag=True, help='Show changes without recording them')
@click.pass_context
def delete(ctx, state, dry_run):
    """Remove the manifest's resources from desired state."""
    manifest = _load_manifest(ctx)
    manager = ApplyManager(_store(ctx, state), ctx.obj['settings'])
    try:
        result = manager.delete(manifest, dry_run=dry_run)
    except KdescError as e:
        _fail(str(e))
    click.echo(ReportRenderer().render_changes(result))


@cli.command()
@click.option('--state', default=None, help='State file (default from configuration)')
@click.pass_context
def get(ctx, state):
    """List resources in the desired state."""
    store = _store(ctx, state)
    keys = store.list()
    if not keys:
        click.echo("No resources recorded.")
        return
    click.echo(f"{'KIND':12} {'NAMESPACE':15} {'NAME':20}")
    click.echo("-" * 47)
    for key in keys:
        kind, namespace, name = key.split("/", 2)
        click.echo(f"{kind:12} {namespace:15} {name:20}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()
