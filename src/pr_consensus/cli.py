"""
Command line interface for PR Consensus: run the webhook server, validate a
consensus config locally, or evaluate a pull request on demand.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pr_consensus import __version__
from pr_consensus.utils import logging_config
from pr_consensus.utils.config_file import ConfigError, load_consensus_config, load_local_config
from pr_consensus.utils.schema import CheckConclusion
from pr_consensus.utils.settings import Settings

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    name="pr-consensus",
    help="Team reviewer assignment and approval consensus checks for GitHub pull requests",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"PR Consensus version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """PR Consensus: approval consensus checks for GitHub teams"""
    pass


def _print_config_errors(error: ConfigError) -> None:
    console.print("[bold red]Configuration Error[/bold red]")
    for failure in error.failures:
        console.print(f"  [red]•[/red] {failure.message}", highlight=False)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to CONSENSUS_LOG_LEVEL or INFO)",
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file"),
):
    """Run the GitHub App webhook server."""
    import uvicorn

    settings = Settings.from_env()
    logging_config.setup_logging(log_level or settings.log_level, log_file)

    from pr_consensus.github_app.webhook_handler import app as webhook_app

    logger.info(f"Starting PR Consensus {__version__} on {host}:{port}")
    uvicorn.run(webhook_app, host=host, port=port, log_config=None)


@app.command("validate")
def validate_command(
    path: Path = typer.Argument(
        Path(".github/consensus.yml"),
        help="Consensus config to validate",
    ),
):
    """Validate a consensus config file offline (team slugs are not looked up)."""
    logging_config.setup_logging("WARNING")

    try:
        teams = load_local_config(path)
    except ConfigError as e:
        _print_config_errors(e)
        raise typer.Exit(code=1)

    table = Table(title=f"Consensus teams in {path}")
    table.add_column("Team", style="cyan")
    table.add_column("Consensus", style="magenta")
    for team in teams:
        table.add_row(team.slug, str(team.consensus))
    console.print(table)


@app.command("evaluate")
def evaluate_command(
    repository: str = typer.Argument(..., help="Repository as owner/repo"),
    pr_number: int = typer.Argument(..., help="Pull request number"),
    installation_id: int = typer.Option(
        ...,
        "--installation-id",
        "-i",
        help="GitHub App installation ID for the repository",
    ),
    org: Optional[str] = typer.Option(
        None,
        "--org",
        help="Organization that owns the teams (defaults to the repository owner)",
    ),
    publish: bool = typer.Option(
        False,
        "--publish",
        help="Publish the result as a check run on the PR's head commit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable detailed logging"),
):
    """Evaluate team consensus for a pull request using live GitHub data."""
    from pr_consensus.core.consensus import (
        build_review_state,
        collect_commit_authors,
        evaluate_consensus,
    )
    from pr_consensus.github_app.check_reporter import publish_report
    from pr_consensus.github_app.github_backend import GitHubRepository, GitHubTeamDirectory
    from pr_consensus.github_app.github_client import GitHubClient, TransportError

    settings = Settings.from_env()
    logging_config.setup_logging("DEBUG" if verbose else settings.log_level)

    if "/" not in repository:
        console.print("[red]Repository must be given as owner/repo[/red]")
        raise typer.Exit(code=2)

    try:
        client = GitHubClient(settings)
        repo = GitHubRepository(client, installation_id, repository)
        directory = GitHubTeamDirectory(client, installation_id, org or repository.split("/")[0])

        teams = load_consensus_config(repo, directory, settings.config_path)
        commit_authors = collect_commit_authors(repo.list_commits(pr_number))
        reviews = build_review_state(repo.list_reviews(pr_number))
        result = evaluate_consensus(teams, reviews, commit_authors, directory)
    except ConfigError as e:
        _print_config_errors(e)
        raise typer.Exit(code=1)
    except (TransportError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        raise typer.Exit(code=2)

    table = Table(title=f"{repository}#{pr_number}: {result.title}")
    table.add_column("Team", style="cyan")
    table.add_column("Status")
    table.add_column("Approvals", justify="right")
    table.add_column("Required", justify="right")
    table.add_column("Eligible", justify="right")
    for verdict in result.teams:
        status_style = "green" if verdict.passed else "red"
        table.add_row(
            verdict.slug,
            f"[{status_style}]{verdict.status.value}[/{status_style}]",
            str(verdict.approvals),
            str(verdict.threshold + 1),
            str(verdict.effective_count),
        )
    console.print(table)
    console.print(f"Conclusion: [bold]{result.conclusion.value}[/bold]")

    if publish:
        try:
            pull = client.get_pull_request(installation_id, repository, pr_number)
            publish_report(repo, {"pull_request": pull}, result, settings.check_name)
        except TransportError as e:
            console.print(f"[red]Failed to publish check:[/red] {e}", highlight=False)
            raise typer.Exit(code=2)
        console.print(f"Published check '{settings.check_name}'")

    if result.conclusion != CheckConclusion.SUCCESS:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
