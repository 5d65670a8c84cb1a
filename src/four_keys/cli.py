"""Command-line interface for the Four Keys metrics tool."""

import sys
from typing import Optional, Tuple

import click
import pandas as pd

from .calculators.change_failure_rate import ChangeFailureRateCalculator
from .calculators.deployment_frequency import DeploymentFrequencyCalculator
from .calculators.lead_time import LeadTimeCalculator
from .calculators.mttr import MTTRCalculator
from .calculators.summary import FourKeysSummaryCalculator
from .config import build_deployment_config, build_failure_config, parse_period, validate_repository
from .extractors.github_client import DEFAULT_API_URL, GitHubClient
from .logging import get_logger, setup_logging
from .models import DeploymentMethod, Period

logger = get_logger(__name__)

PERIODS = [p.value for p in Period]
METHODS = [m.value for m in DeploymentMethod]


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, token: Optional[str], api_url: str, graphql_url: Optional[str]):
        self.token = token
        self.api_url = api_url
        self.graphql_url = graphql_url
        self._client = None

    @property
    def client(self) -> GitHubClient:
        if self._client is None:
            if not self.token:
                raise click.UsageError("A GitHub token is required (--token or GITHUB_TOKEN)")
            self._client = GitHubClient(self.token, api_url=self.api_url, graphql_url=self.graphql_url)
        return self._client


def repository_options(func):
    func = click.option(
        '--output-format', type=click.Choice(['json', 'table']), default='table'
    )(func)
    func = click.option(
        '--period', type=click.Choice(PERIODS), default='month', show_default=True,
        help='Look-back window ending today'
    )(func)
    func = click.option('--repo', required=True, help='GitHub repository name')(func)
    func = click.option('--owner', required=True, help='GitHub repository owner')(func)
    return func


def deployment_options(default_method: str):
    def decorator(func):
        func = click.option(
            '--tag-pattern', help='Regular expression tag names must match (tag method)'
        )(func)
        func = click.option(
            '--tag-prefix', envvar='DEFAULT_TAG_PREFIX', default='',
            help='Prefix tag names must start with (tag method)'
        )(func)
        func = click.option(
            '--workflow-file', help='Deployment workflow file, e.g. deploy.yml (workflow method)'
        )(func)
        func = click.option(
            '--workflow-name', help='Deployment workflow name (workflow method)'
        )(func)
        func = click.option(
            '--method', type=click.Choice(METHODS), default=default_method, show_default=True,
            help='How deployments are detected'
        )(func)
        return func
    return decorator


def incident_options(func):
    func = click.option(
        '--pr-branch-pattern', help='Regular expression for hotfix branch names, e.g. ^hotfix/'
    )(func)
    func = click.option(
        '--pr-label', 'pr_labels', multiple=True, help='Label marking a hotfix PR (repeatable)'
    )(func)
    func = click.option(
        '--issue-label', 'issue_labels', multiple=True, help='Label marking an incident issue (repeatable)'
    )(func)
    return func


def failure_options(func):
    func = click.option(
        '--detect-workflow-failures', is_flag=True, help='Count failed workflow runs as failures'
    )(func)
    return incident_options(func)


@click.group()
@click.option(
    '--token', envvar='GITHUB_TOKEN', help='GitHub token'
)
@click.option(
    '--api-url', envvar='GITHUB_API_URL', default=DEFAULT_API_URL, show_default=True,
    help='GitHub REST API root (GitHub Enterprise)'
)
@click.option(
    '--graphql-url', envvar='GITHUB_GRAPHQL_URL', help='GitHub GraphQL endpoint [default: <api-url>/graphql]'
)
@click.option(
    '--log-level', envvar='FOUR_KEYS_LOG_LEVEL', default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False)
)
@click.option('--log-file', help='Also write logs to this file')
@click.pass_context
def cli(ctx, token: Optional[str], api_url: str, graphql_url: Optional[str], log_level: str, log_file: Optional[str]):
    """Four Keys (DORA) metrics for GitHub repositories."""
    setup_logging(level=log_level, log_file=log_file)
    ctx.obj = CLIContext(token, api_url, graphql_url)


@cli.command('deployment-frequency')
@repository_options
@deployment_options('workflow')
@click.pass_context
def deployment_frequency(ctx, owner: str, repo: str, period: str, output_format: str, method: str,
                         workflow_name: Optional[str], workflow_file: Optional[str],
                         tag_prefix: str, tag_pattern: Optional[str]):
    """Calculate deployment frequency."""
    try:
        validate_repository(owner, repo)
        config = build_deployment_config(method, workflow_name, workflow_file, tag_prefix, tag_pattern)
        calculator = DeploymentFrequencyCalculator(ctx.obj.client)
        result = calculator.calculate(owner, repo, parse_period(period), config)

        if output_format == 'json':
            click.echo(result.to_json())
            return

        _echo_table(f"Deployment Frequency - {result.repository}", {
            'Period': _period_label(result),
            'Method': config.method.value,
            'Deployments': result.total_deployments,
            'Per Day': f"{result.deployments_per_day:.2f}",
        })
        if result.deployment_dates:
            click.echo("\nDeployments:")
            click.echo(pd.DataFrame({
                'Deployed At': [d.strftime('%Y-%m-%d %H:%M') for d in result.deployment_dates[-10:]]
            }).to_string(index=False))

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"✗ Error calculating deployment frequency: {e}", err=True)
        sys.exit(1)


@cli.command('lead-time')
@repository_options
@click.pass_context
def lead_time(ctx, owner: str, repo: str, period: str, output_format: str):
    """Calculate lead time for changes (PR creation to merge)."""
    try:
        validate_repository(owner, repo)
        calculator = LeadTimeCalculator(ctx.obj.client)
        result = calculator.calculate(owner, repo, parse_period(period))

        if output_format == 'json':
            click.echo(result.to_json())
            return

        _echo_table(f"Lead Time - {result.repository}", {
            'Period': _period_label(result),
            'PRs': result.sample_count,
            'Average': _format_hours(result.average_lead_time_hours),
            'Median': _format_hours(result.median_lead_time_hours),
            'P95': _format_hours(result.p95_lead_time_hours),
        })
        if result.samples:
            click.echo("\nRecent pull requests:")
            click.echo(pd.DataFrame([
                {
                    'PR': f"#{s.pr_number}",
                    'Title': s.title[:50],
                    'Merged': s.merged_at.strftime('%Y-%m-%d'),
                    'Lead Time': _format_hours(s.lead_time_hours),
                }
                for s in result.samples[:10]
            ]).to_string(index=False))

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"✗ Error calculating lead time: {e}", err=True)
        sys.exit(1)


@cli.command('change-failure-rate')
@repository_options
@deployment_options('release')
@failure_options
@click.pass_context
def change_failure_rate(ctx, owner: str, repo: str, period: str, output_format: str, method: str,
                        workflow_name: Optional[str], workflow_file: Optional[str],
                        tag_prefix: str, tag_pattern: Optional[str],
                        issue_labels: Tuple[str, ...], pr_labels: Tuple[str, ...],
                        pr_branch_pattern: Optional[str], detect_workflow_failures: bool):
    """Calculate change failure rate."""
    try:
        validate_repository(owner, repo)
        deployment_config = build_deployment_config(
            method, workflow_name, workflow_file, tag_prefix, tag_pattern
        )
        failure_config = build_failure_config(
            issue_labels, pr_labels, pr_branch_pattern, detect_workflow_failures
        )
        calculator = ChangeFailureRateCalculator(ctx.obj.client)
        result = calculator.calculate(
            owner, repo, parse_period(period), deployment_config, failure_config
        )

        if output_format == 'json':
            click.echo(result.to_json())
            return

        _echo_table(f"Change Failure Rate - {result.repository}", {
            'Period': _period_label(result),
            'Deployments': result.total_deployments,
            'Failures': result.failed_deployments,
            'Failure Rate': f"{result.failure_rate:.2f}%",
        })
        if result.failures:
            click.echo("\nFailures:")
            click.echo(pd.DataFrame([
                {
                    'Type': f.type.value,
                    'ID': f.identifier,
                    'Title': f.title[:50],
                    'Date': f.occurred_at.strftime('%Y-%m-%d %H:%M'),
                }
                for f in result.failures[:10]
            ]).to_string(index=False))

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"✗ Error calculating change failure rate: {e}", err=True)
        sys.exit(1)


@cli.command()
@repository_options
@incident_options
@click.pass_context
def mttr(ctx, owner: str, repo: str, period: str, output_format: str,
         issue_labels: Tuple[str, ...], pr_labels: Tuple[str, ...],
         pr_branch_pattern: Optional[str]):
    """Calculate mean time to restore."""
    try:
        validate_repository(owner, repo)
        config = build_failure_config(issue_labels, pr_labels, pr_branch_pattern)
        calculator = MTTRCalculator(ctx.obj.client)
        result = calculator.calculate(owner, repo, parse_period(period), config)

        if output_format == 'json':
            click.echo(result.to_json())
            return

        _echo_table(f"MTTR - {result.repository}", {
            'Period': _period_label(result),
            'Incidents': len(result.incidents),
            'Average': _format_hours(result.average_mttr_hours),
            'Median': _format_hours(result.median_mttr_hours),
        })
        if result.incidents:
            click.echo("\nIncidents:")
            click.echo(pd.DataFrame([
                {
                    'Source': f"Issue #{i.issue_number}" if i.issue_number is not None else f"PR #{i.pr_number}",
                    'Title': i.title[:50],
                    'Detected': i.detected_at.strftime('%Y-%m-%d %H:%M'),
                    'MTTR': _format_hours(i.mttr_hours),
                }
                for i in result.incidents[:10]
            ]).to_string(index=False))

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"✗ Error calculating MTTR: {e}", err=True)
        sys.exit(1)


@cli.command()
@repository_options
@deployment_options('release')
@failure_options
@click.pass_context
def summary(ctx, owner: str, repo: str, period: str, output_format: str, method: str,
            workflow_name: Optional[str], workflow_file: Optional[str],
            tag_prefix: str, tag_pattern: Optional[str],
            issue_labels: Tuple[str, ...], pr_labels: Tuple[str, ...],
            pr_branch_pattern: Optional[str], detect_workflow_failures: bool):
    """Calculate all four metrics and the overall performance level."""
    try:
        validate_repository(owner, repo)
        deployment_config = build_deployment_config(
            method, workflow_name, workflow_file, tag_prefix, tag_pattern
        )
        failure_config = build_failure_config(
            issue_labels, pr_labels, pr_branch_pattern, detect_workflow_failures
        )
        calculator = FourKeysSummaryCalculator(ctx.obj.client)
        result = calculator.calculate(
            owner, repo, parse_period(period), deployment_config, failure_config
        )

        if output_format == 'json':
            click.echo(result.to_json())
            return

        df = pd.DataFrame([
            {
                'Metric': 'Deployment Frequency',
                'Value': f"{result.deployment_frequency.deployments_per_day:.2f}/day",
                'Detail': f"{result.deployment_frequency.total_deployments} deployments",
                'Level': result.levels['deployment_frequency'].label,
            },
            {
                'Metric': 'Lead Time',
                'Value': _format_hours(result.lead_time.average_lead_time_hours),
                'Detail': f"median {_format_hours(result.lead_time.median_lead_time_hours)}, "
                          f"{result.lead_time.sample_count} PRs",
                'Level': result.levels['lead_time'].label,
            },
            {
                'Metric': 'Change Failure Rate',
                'Value': f"{result.change_failure_rate.failure_rate:.2f}%",
                'Detail': f"{result.change_failure_rate.failed_deployments}/"
                          f"{result.change_failure_rate.total_deployments} deployments",
                'Level': result.levels['change_failure_rate'].label,
            },
            {
                'Metric': 'MTTR',
                'Value': _format_hours(result.mttr.average_mttr_hours),
                'Detail': f"{len(result.mttr.incidents)} incidents",
                'Level': result.levels['mttr'].label,
            },
        ])

        click.echo(f"\nFour Keys Summary - {result.repository} ({_period_label(result)})")
        click.echo("=" * 80)
        click.echo(df.to_string(index=False))
        click.echo(f"\nOverall Performance Level: {result.overall_level.label}")

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"✗ Error calculating Four Keys summary: {e}", err=True)
        sys.exit(1)


def _echo_table(title: str, row: dict) -> None:
    click.echo(f"\n{title}")
    click.echo("=" * 80)
    click.echo(pd.DataFrame([row]).to_string(index=False))


def _period_label(result) -> str:
    return (
        f"{result.date_range.start.strftime('%Y-%m-%d')} to "
        f"{result.date_range.end.strftime('%Y-%m-%d')}"
    )


def _format_hours(hours: float) -> str:
    """Render hours as e.g. ``2d 3h`` or ``5.5h``."""
    days = int(hours // 24)
    if days > 0:
        return f"{days}d {int(hours % 24)}h"
    return f"{hours:.1f}h"


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
