"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from conduit_qa import __version__
from conduit_qa.conduit_services import delete_test_articles, ensure_users_exist
from conduit_qa.core.config import SettingsConfig, get_app_config, init_app_config
from conduit_qa.exceptions import ConfigurationError
from conduit_qa.factories import TITLE_MARKER, default_users
from conduit_qa.testrail_sync import TestRailSync

console = Console()

app = typer.Typer(help="CONDUIT-QA - Conduit API test automation", invoke_without_command=True)
testrail_app = typer.Typer(help="TestRail run and result operations")
app.add_typer(testrail_app, name="testrail")
conduit_app = typer.Typer(help="Conduit test data setup and teardown")
app.add_typer(conduit_app, name="conduit")
config_app = typer.Typer(help="Configuration inspection")
app.add_typer(config_app, name="config")


def configure_app(debug: bool = False, needs_settings: bool = True):
    """
    Configure the application with the specified settings.

    Args:
    ----
        debug: Whether to enable debug mode
        needs_settings: Whether the command uses the Conduit environment; when
            it does not, ENVIRONMENT is not validated

    """
    overrides: dict = {"debug": debug}
    if not needs_settings:
        overrides["settings"] = SettingsConfig()
    try:
        config = init_app_config(**overrides)
    except ConfigurationError as e:
        fail(e)
    config.configure_logging()
    return config


def fail(error: Exception) -> NoReturn:
    console.print(f"Error: {error}", style="red")
    raise typer.Exit(code=1)


@app.callback()
def callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode with verbose logging"),
    version: bool = typer.Option(False, "--version", help="Show the application version and exit"),
):
    """
    CONDUIT-QA - Conduit API test automation and TestRail synchronization.

    Use --debug to enable verbose logging.
    """
    if version:
        console.print(f"CONDUIT-QA version: {__version__}")
        raise typer.Exit()

    configure_app(debug=debug, needs_settings=ctx.invoked_subcommand != "testrail")
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@testrail_app.command("add-run")
def add_run(
    project: str | None = typer.Option(None, help="Project key (default: TESTRAIL_PROJECT)"),
    case_filter: str | None = typer.Option(
        None, "--filter", help="Case filter name or number (default: TESTRAIL_CASES_FILTER)"
    ),
):
    """
    Create a TestRail run and print its id.
    """
    sync = TestRailSync(get_app_config().testrail)
    try:
        run_id = sync.add_test_run(project, case_filter)
    except ConfigurationError as e:
        fail(e)
    console.print(f"Created TestRail run {run_id}", style="green")
    typer.echo(run_id)


@testrail_app.command("resolve-run")
def resolve_run(
    run_id: int | None = typer.Option(None, help="Explicit run id"),
):
    """
    Print the run id results would be reported to.
    """
    sync = TestRailSync(get_app_config().testrail)
    try:
        typer.echo(sync.resolve_test_run_id(run_id))
    except ConfigurationError as e:
        fail(e)


@testrail_app.command("should-skip")
def should_skip(
    title: str = typer.Argument(..., help="Test title containing @C<id> tags"),
    run_id: int | None = typer.Option(None, help="Run to check (default: TESTRAIL_TEST_RUN_ID)"),
):
    """
    Check whether a test already passed in the run.

    Exits with code 0 when the test can be skipped and 2 when it must run.
    """
    sync = TestRailSync(get_app_config().testrail)
    try:
        skip = sync.should_skip_test_execution(title, run_id)
    except ConfigurationError as e:
        fail(e)
    if skip:
        console.print("Already passed: skip", style="green")
        return
    console.print("Not passed yet: run")
    raise typer.Exit(code=2)


@conduit_app.command("setup-users")
def setup_users():
    """
    Register the default test users unless they already exist.
    """
    settings = get_app_config().settings
    ensure_users_exist(settings, default_users(settings).values())
    console.print("Test users are ready", style="green")


@conduit_app.command("teardown-articles")
def teardown_articles(
    title_marker: str = typer.Option(TITLE_MARKER, help="Delete articles whose title contains this"),
):
    """
    Delete the articles created by the test users.
    """
    settings = get_app_config().settings
    deleted = delete_test_articles(settings, default_users(settings).values(), title_marker)
    console.print(f"Deleted {deleted} articles", style="green")


@config_app.command("show")
def show_config():
    """
    Show the effective configuration (secrets masked).
    """
    config = get_app_config()

    table = Table(title="CONDUIT-QA Configuration")
    table.add_column("Setting")
    table.add_column("Value")

    testrail = config.testrail
    rows = [
        ("environment", config.settings.environment.value),
        ("conduit api url", config.settings.conduit_api_url),
        ("testrail base url", testrail.base_url),
        ("testrail user", testrail.username or "-"),
        ("testrail password", "********" if testrail.password else "-"),
        ("testrail enabled", str(testrail.enabled)),
        ("testrail run id", str(testrail.test_run_id or "-")),
        ("testrail project", testrail.project or "-"),
        ("testrail cases filter", testrail.cases_filter or "-"),
        ("log level", config.logging.level),
        ("debug", str(config.debug)),
    ]
    for setting, value in rows:
        table.add_row(setting, value)

    console.print(table)


if __name__ == "__main__":
    app()
