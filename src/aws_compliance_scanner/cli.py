"""
AWS Compliance Scanner CLI Interface
Command-line interface for running compliance scans
"""

import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .core.config import AWSCredentials, ScanConfig
from .core.engine import ScanEngine
from .core.errors import ScannerError
from .core.output import OutputEngine
from .core.provider import AWSProvider
from .core.registry import CheckRegistry

console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """AWS Compliance Scanner"""
    ctx.ensure_object(dict)

    # Configure logging
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Reduce noise from boto3
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


@cli.command()
@click.option('--profile', help='AWS profile to use')
@click.option('--access-key-id', help='AWS access key ID')
@click.option('--secret-access-key', help='AWS secret access key')
@click.option('--session-token', help='AWS session token')
@click.option('--region', default='us-east-1', show_default=True, help='Default AWS region')
@click.option('--regions', '-r', multiple=True, help='Restrict regional checks to these regions')
@click.option('--services', '-s', multiple=True, help='Services to scan (iam, s3, vpc, cloudtrail)')
@click.option('--rules', '-c', multiple=True, help='Specific rule ids to run')
@click.option('--output', '-o', type=click.Path(), help='Output file path')
@click.option('--parallel/--no-parallel', default=True, help='Fan regions and buckets out over a worker pool')
@click.option('--max-workers', type=int, default=10, show_default=True, help='Maximum parallel workers')
@click.option('--timeout', type=int, help='Scan timeout in seconds')
@click.option('--partial', is_flag=True, help='Keep evaluating other rules when one fails')
@click.option('--quiet', '-q', is_flag=True, help='Quiet mode - JSON output only')
@click.option('--pretty', is_flag=True, help='Pretty print JSON output')
def scan(profile, access_key_id, secret_access_key, session_token, region, regions,
         services, rules, output, parallel, max_workers, timeout, partial, quiet, pretty):
    """Execute AWS compliance scan"""

    try:
        credentials = AWSCredentials(
            profile=profile,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
            region=region,
        )
        config = ScanConfig(
            credentials=credentials,
            regions=list(regions) or None,
            services=list(services) or None,
            rules=list(rules) or None,
            max_workers=max_workers if parallel else 1,
            timeout=timeout,
        )

        if not quiet:
            console.print("[bold blue]AWS Compliance Scanner[/bold blue]")

        provider = AWSProvider.from_credentials(credentials)
        engine = ScanEngine(provider, CheckRegistry(), config)
        account_id = provider.get_account_id()

        if partial:
            report = engine.run_scan_partial()
            result = OutputEngine.format_partial_json(report, account_id)
            failed = bool(report.errors) or result['summary']['non_compliant'] > 0
        else:
            verdicts = engine.run_scan()
            result = OutputEngine.format_json(verdicts, account_id)
            failed = result['summary']['non_compliant'] > 0

    except ScannerError as e:
        error_result = {"error": True, **e.to_dict()}
        _emit(error_result, output, pretty)
        if not quiet:
            console.print(f"[red]Scan failed: {e}[/red]")
        sys.exit(1)

    _emit(result, output, pretty)
    if not quiet:
        _display_summary(result['summary'])
        if output:
            console.print(f"[green]Results written to {output}[/green]")

    if failed:
        sys.exit(1)


def _emit(result: dict, output, pretty: bool):
    if output:
        OutputEngine.save_report(result, output)
    else:
        click.echo(json.dumps(result, indent=2 if pretty else None, default=str))


def _display_summary(summary: dict):
    """Display scan summary in rich format"""
    table = Table(title="Compliance Summary", show_header=True, header_style="bold magenta")
    table.add_column("Rule", style="cyan")
    table.add_column("Compliant", style="green", justify="right")
    table.add_column("Non-compliant", style="red", justify="right")

    for rule, counts in summary['by_rule'].items():
        table.add_row(rule, str(counts['compliant']), str(counts['non_compliant']))

    console.print(table)
    console.print(f"Total: {summary['total']}  "
                  f"compliant: {summary['compliant']}  "
                  f"non-compliant: {summary['non_compliant']}")
    if 'rules_total' in summary:
        console.print(f"{summary['rules_evaluated']} of {summary['rules_total']} rules evaluated")


@cli.command()
def list_rules():
    """List the compliance rule catalogue"""
    console.print("[bold blue]Compliance Rules[/bold blue]\n")

    registry = CheckRegistry()
    for service, rules in registry.list_rules().items():
        console.print(f"[bold green]{service}:[/bold green] {registry.get_checker(service).description}")
        for rule in rules:
            console.print(f"  • {rule['rule_id']} - {rule['statement']}")
        console.print()


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Scan interrupted by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
