# omp_deploy/__main__.py
"""
Main entry point for the omp-deploy command-line tool.

Sets up logging, loads the settings file given on the command line (or
`settings.json`), makes sure the open.mp server is installed in the target
directory, and copies the configured assets into it. The tool waits for a
key press before exiting unless `--no-pause` is given.
"""

import logging
import sys

import click

from . import __version__
from .api import deploy as deploy_api
from .cli.utils import handle_api_response, pause_before_exit
from .config.const import DEFAULT_SETTINGS_FILE, app_name_title, env_name
from .context import AppContext
from .logging import DEFAULT_LOG_DIR, log_separator, setup_logging
from .utils.general import startup_checks


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(
    __version__, "-v", "--version", message=f"{app_name_title} %(version)s"
)
@click.argument(
    "settings_path",
    required=False,
    default=DEFAULT_SETTINGS_FILE,
    envvar=f"{env_name}_SETTINGS",
    type=click.Path(dir_okay=False),
)
@click.option(
    "--no-pause",
    is_flag=True,
    default=False,
    help="Exit immediately instead of waiting for a key press.",
)
@click.option(
    "--log-dir",
    default=DEFAULT_LOG_DIR,
    envvar=f"{env_name}_LOG_DIR",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory for the rotating log file.",
)
@click.pass_context
def cli(ctx: click.Context, settings_path: str, no_pause: bool, log_dir: str):
    """Installs the open.mp server if needed and syncs assets into it.

    SETTINGS_PATH is the JSON settings file. If it does not exist, a default
    one is written there and nothing else is done.
    """
    logger = setup_logging(log_dir=log_dir, force_reconfigure=True)
    log_separator(logger, app_name=app_name_title, app_version=__version__)
    startup_checks(app_name_title, __version__)

    app_context = AppContext(settings_path)
    response = deploy_api.run_deployment(app_context)
    exit_code = handle_api_response(response, "Deployment complete.")

    if exit_code:
        logger.error(f"Deployment failed: {response.get('message')}")
    else:
        logger.info(f"Run finished with status '{response.get('status')}'.")

    if not no_pause:
        pause_before_exit()
    ctx.exit(exit_code)


def main():
    """Main execution function wrapped for final, fatal exception handling."""
    try:
        cli()
    except Exception as e:
        # Last-resort catch-all for errors not handled by the command itself.
        logger = logging.getLogger("omp_deploy")
        logger.critical("A fatal, unhandled error occurred.", exc_info=True)
        click.secho(
            f"\nFATAL UNHANDLED ERROR: {type(e).__name__}: {e}", fg="red", bold=True
        )
        click.secho("Please check the logs for more details.", fg="yellow")
        sys.exit(1)


if __name__ == "__main__":
    main()
