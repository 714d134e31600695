"""
Command-line interface for the NuGet explorer.
"""

import click
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Dict, Any, Callable, TypeVar
from pathlib import Path

from . import __version__
from .config import AppConfig, ConfigManager, masked_config_dict
from .error_handling import NuGetExplorerError, AnalysisCancelledError, CancellationToken
from .logging import setup_logging, level_for_verbosity
from .models import PackageReference, PackageAnalysisResult
from .scanners import read_packages
from .tools import NuGetTools

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEVERITY_CHOICES = ['all', 'low', 'medium', 'high', 'critical']
EXIT_CANCELLED = 130


@click.group()
@click.version_option(version=__version__)
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to YAML configuration file'
)
@click.option(
    '--verbose', '-v',
    count=True,
    help='Increase verbosity (use -v or -vv)'
)
@click.option(
    '--quiet', '-q',
    is_flag=True,
    help='Only log errors'
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], verbose: int, quiet: bool) -> None:
    """
    NuGet Explorer - check NuGet packages for updates, vulnerabilities and license changes.

    Results are written to standard output as JSON; logs go to standard error.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@cli.command()
@click.argument('packages', nargs=-1)
@click.option(
    '--project', '-p',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    multiple=True,
    help='Project file, packages.config or Directory.Packages.props to read packages from'
)
@click.option(
    '--framework', '-f',
    help='Target framework (e.g. net8.0)'
)
@click.option(
    '--prerelease/--no-prerelease',
    default=None,
    help='Consider prerelease versions'
)
@click.option(
    '--updates/--no-updates',
    default=True,
    help='Check for package updates'
)
@click.option(
    '--vulnerabilities/--no-vulnerabilities',
    default=True,
    help='Check for known vulnerabilities'
)
@click.option(
    '--licenses/--no-licenses',
    default=True,
    help='Check for license changes in available updates'
)
@click.option(
    '--severity', '-s',
    type=click.Choice(SEVERITY_CHOICES, case_sensitive=False),
    default=None,
    help='Minimum vulnerability severity to report'
)
@click.option(
    '--max-concurrency',
    type=click.IntRange(min=1),
    help='Maximum number of packages analyzed at once'
)
@click.option(
    '--format', 'output_format',
    type=click.Choice(['json', 'table'], case_sensitive=False),
    default='json',
    help='Output format'
)
@click.option(
    '--output', '-o',
    type=click.Path(dir_okay=False, path_type=Path),
    help='Write the result to a file instead of standard output'
)
@click.pass_context
def analyze(
    ctx: click.Context,
    packages: List[str],
    project: List[Path],
    framework: Optional[str],
    prerelease: Optional[bool],
    updates: bool,
    vulnerabilities: bool,
    licenses: bool,
    severity: Optional[str],
    max_concurrency: Optional[int],
    output_format: str,
    output: Optional[Path]
) -> None:
    """
    Analyze NuGet packages.

    PACKAGES are given as ID@VERSION. Packages can also be read from
    project files with --project. Press Ctrl-C to cancel the analysis.

    Examples:

        # Check two packages
        nuget-explorer analyze Newtonsoft.Json@12.0.1 Serilog@2.10.0

        # Check a project, reporting only high and critical vulnerabilities
        nuget-explorer analyze -p src/App/App.csproj --severity high

        # Updates only, including prereleases
        nuget-explorer analyze Polly@7.2.0 --prerelease --no-vulnerabilities --no-licenses
    """
    try:
        references = collect_packages(packages, project)
        if not references:
            raise click.UsageError("No packages given. Pass ID@VERSION arguments or --project.")

        overrides: Dict[str, Any] = {}
        if max_concurrency:
            overrides['analysis'] = {'max_concurrency': max_concurrency}
        config = load_config(ctx, overrides)

        token = CancellationToken()
        with NuGetTools(config) as tools:
            result = run_cancellable(
                lambda: tools.run_analysis(
                    references,
                    target_framework=framework,
                    include_prerelease=config.analysis.include_prerelease if prerelease is None else prerelease,
                    check_updates=updates,
                    check_vulnerabilities=vulnerabilities,
                    check_licenses=licenses,
                    severity_filter=severity or config.analysis.severity_filter,
                    cancellation=token
                ),
                token
            )

        text = result.to_json() if output_format == 'json' else format_result_table(result)
        write_output(text, output)

    except AnalysisCancelledError:
        click.echo("Analysis cancelled", err=True)
        sys.exit(EXIT_CANCELLED)
    except NuGetExplorerError as e:
        fail(ctx, e)


@cli.command()
@click.option(
    '--format', 'output_format',
    type=click.Choice(['json', 'table'], case_sensitive=False),
    default='json',
    help='Output format'
)
@click.pass_context
def sources(ctx: click.Context, output_format: str) -> None:
    """
    List the enabled package sources.

    Sources come from nuget.config and the registry section of the
    configuration file.
    """
    try:
        config = load_config(ctx)
        with NuGetTools(config) as tools:
            text = tools.list_package_sources()

        if output_format == 'table':
            text = format_sources_table(json.loads(text)['sources'])
        click.echo(text)

    except NuGetExplorerError as e:
        fail(ctx, e)


@cli.command()
@click.option(
    '--format', '-f', 'output_format',
    type=click.Choice(['table', 'json', 'yaml'], case_sensitive=False),
    default='table',
    help='Output format for configuration display'
)
@click.pass_context
def config(ctx: click.Context, output_format: str) -> None:
    """
    Display the effective configuration.

    Shows defaults merged with the configuration file and environment
    variable overrides. Passwords are masked.
    """
    try:
        config_dict = masked_config_dict(load_config(ctx))

        if output_format == 'json':
            click.echo(json.dumps(config_dict, indent=2, default=str))
        elif output_format == 'yaml':
            import yaml
            click.echo(yaml.safe_dump(config_dict, default_flow_style=False))
        else:
            display_config_table(config_dict)

    except NuGetExplorerError as e:
        fail(ctx, e)


def load_config(ctx: click.Context, overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
    """Load configuration for a command and set up logging from it."""
    app_config = ConfigManager(ctx.obj.get('config_file'), overrides).get_config()

    verbose = ctx.obj.get('verbose', 0)
    quiet = ctx.obj.get('quiet', False)
    level = level_for_verbosity(verbose, quiet) if (verbose or quiet) else None
    setup_logging(app_config.logging, level=level, force=True)

    return app_config


def collect_packages(packages: List[str], projects: List[Path]) -> List[PackageReference]:
    """Combine ID@VERSION arguments and packages read from project files."""
    references = []
    for value in packages:
        try:
            references.append(PackageReference.parse(value))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint='PACKAGES')

    for project_path in projects:
        references.extend(read_packages(project_path))

    return references


def run_cancellable(func: Callable[[], T], token: CancellationToken) -> T:
    """
    Run ``func`` off the main thread so Ctrl-C can cancel it.

    On KeyboardInterrupt the token is cancelled and the call is awaited, so
    it finishes by raising AnalysisCancelledError.
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="analysis") as runner:
        future = runner.submit(func)
        try:
            return future.result()
        except KeyboardInterrupt:
            token.cancel("interrupted by user")
            return future.result()


def write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        click.echo(text)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding='utf-8')
    click.echo(f"Result written to {output}", err=True)


def fail(ctx: click.Context, error: NuGetExplorerError) -> None:
    click.echo(f"Error: {error.message}", err=True)
    if ctx.obj.get('verbose', 0) > 1:
        click.echo(str(error), err=True)
    sys.exit(1)


def format_result_table(result: PackageAnalysisResult) -> str:
    """Render an analysis result for a terminal."""
    summary = result.summary
    counts = summary.severity_counts
    lines = [
        "=" * 60,
        "PACKAGE ANALYSIS RESULTS",
        "=" * 60,
        f"Packages analyzed: {summary.total_packages}",
        f"Up to date: {summary.up_to_date}",
        f"With updates: {summary.packages_with_updates}",
        f"Vulnerable: {summary.vulnerable_packages} "
        f"(critical {counts.critical}, high {counts.high}, medium {counts.medium}, low {counts.low})",
        f"License changes: {summary.packages_with_license_changes}",
        "-" * 60
    ]

    for analysis in result.packages:
        lines.append(f"{analysis.id} {analysis.current_version}")
        if analysis.updates:
            lines.append(
                f"  update: {analysis.updates.latest_stable_version} "
                f"({analysis.updates.version_change_type.label})"
            )
        for vulnerability in analysis.vulnerabilities:
            lines.append(f"  vulnerability: {vulnerability.id} [{vulnerability.severity.label}]")
        if analysis.license:
            lines.append(f"  license: {analysis.license.description} [{analysis.license.severity.label}]")

    lines.append("=" * 60)
    return "\n".join(lines)


def format_sources_table(source_dicts: List[Dict[str, Any]]) -> str:
    lines = []
    for source in source_dicts:
        flags = []
        if source.get('isOfficial'):
            flags.append("official")
        if source.get('requiresAuth'):
            flags.append("authenticated" if source.get('isAuthenticated') else "auth required")
        suffix = f" ({', '.join(flags)})" if flags else ""
        lines.append(f"{source['name']}: {source['url']}{suffix}")
    return "\n".join(lines) if lines else "No enabled package sources"


def display_config_table(config_dict: Dict[str, Any]) -> None:
    """Display configuration in table format."""
    click.echo("\nCurrent Configuration:")
    click.echo("-" * 50)

    for section_name, section in config_dict.items():
        click.echo(f"\n[{section_name.capitalize()}]")
        for key, value in section.items():
            if key == 'sources':
                click.echo(f"  {key}:")
                for source in value:
                    click.echo(f"    - {source}")
            else:
                click.echo(f"  {key}: {value}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
