"""
Command Line Interface for dockerlint.
"""
import sys
import click
from ..FORMATTERS import FORMATS, format_results
from ..LINTER import lint, lint_files
from ..MODELS.check_failure import Severity
from ..MODELS.lint_config import LintConfig
from ..PARSERS.config_parser import ConfigError, ConfigParser
from ..PARSERS.dockerfile_parser import DockerfileParseError
from ..RULES import all_rules

THRESHOLDS = ("error", "warning", "info", "style", "ignore", "none")


@click.group()
@click.pass_context
def cli(ctx):
    """
    dockerlint - Dockerfile linter.

    Checks Dockerfiles against best practice rules and reports DLxxxx diagnostics.
    """
    ctx.ensure_object(dict)


def _load_config(config_path, ignore, trusted_registry, failure_threshold, no_fail) -> LintConfig:
    parser = ConfigParser()
    if config_path:
        config = parser.parse(config_path)
    else:
        config = parser.find_and_load()

    updates = {}
    if ignore:
        updates["ignored"] = config.ignored | set(ignore)
    if trusted_registry:
        updates["trusted_registries"] = config.trusted_registries | set(trusted_registry)
    if failure_threshold:
        updates["failure_threshold"] = Severity.parse(failure_threshold)
    if no_fail:
        updates["no_fail"] = True
    if updates:
        config = config.model_copy(update=updates)
    return config


@cli.command("lint")
@click.argument('files', nargs=-1, required=True)
@click.option('--format', '-f', 'fmt', type=click.Choice(FORMATS), default='tty', help='Output format')
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False), help='Config file path')
@click.option('--ignore', multiple=True, help='Rule code to ignore (repeatable)')
@click.option('--trusted-registry', multiple=True, help='Trusted registry for DL3026 (repeatable)')
@click.option('--failure-threshold', '-t', type=click.Choice(THRESHOLDS, case_sensitive=False),
              help='Lowest severity that is reported and fails the run')
@click.option('--no-fail', is_flag=True, help='Always exit with status 0')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@click.option('--jobs', '-j', default=1, type=click.IntRange(min=1), help='Files linted in parallel')
@click.pass_context
def lint_command(ctx, files, fmt, config_path, ignore, trusted_registry, failure_threshold, no_fail, no_color, jobs):
    """Lint one or more Dockerfiles. Use - to read from stdin."""
    try:
        config = _load_config(config_path, ignore, trusted_registry, failure_threshold, no_fail)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        results = []
        paths = [f for f in files if f != '-']
        by_path = dict(zip(paths, lint_files(paths, config, jobs=jobs)))
        for f in files:
            if f == '-':
                content = click.get_text_stream('stdin').read()
                results.append(lint(content, config, filename='-'))
            else:
                results.append(by_path[f])
    except (DockerfileParseError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    except UnicodeDecodeError as e:
        click.echo(f"Error: Dockerfile is not valid UTF-8: {e}", err=True)
        ctx.exit(1)

    color = not no_color and fmt == 'tty' and sys.stdout.isatty()
    output = format_results(results, fmt, color=color)
    if output:
        click.echo(output)

    if any(result.should_fail(config) for result in results):
        ctx.exit(1)


@cli.command("rules")
def rules_command():
    """List every rule with its default severity."""
    for rule in all_rules():
        click.echo(f"{rule.code:8} {rule.severity.value:8} {rule.message}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
