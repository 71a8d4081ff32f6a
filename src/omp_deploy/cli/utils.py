# omp_deploy/cli/utils.py
"""
Console helpers for the omp-deploy command.

Turns API result dictionaries into coloured messages and exit codes, and
holds the "press any key" pause shown before the tool exits.
"""

import logging
from typing import Any, Dict, Optional

import click

from omp_deploy.utils.general import (
    _INFO_PREFIX,
    _OK_PREFIX,
    _WARN_PREFIX,
    _ERROR_PREFIX,
)

logger = logging.getLogger(__name__)


def handle_api_response(
    response: Dict[str, Any], success_msg: Optional[str] = None
) -> int:
    """
    Prints the outcome of an API call and returns the matching exit code.

    Args:
        response: A result dictionary with at least a "status" key.
        success_msg: Shown on success when the response carries no message.

    Returns:
        0 for "success" and "created", 1 for anything else.
    """
    status = response.get("status")
    message = response.get("message")

    if status == "success":
        click.echo(f"{_OK_PREFIX}{message or success_msg or 'Done.'}")
        return 0

    if status == "created":
        click.echo(f"{_INFO_PREFIX}{message}")
        return 0

    error_type = response.get("error_type", "Error")
    click.echo(f"{_ERROR_PREFIX}{error_type}: {message or 'Unknown error.'}")
    missing_fields = response.get("missing_fields")
    if missing_fields:
        click.echo(f"{_WARN_PREFIX}Missing settings: {', '.join(missing_fields)}")
    logger.debug(f"CLI: Error response: {response}")
    return 1


def pause_before_exit(message: str = "Press any key to exit...") -> None:
    """Waits for a key press. Does nothing when stdin is not a terminal."""
    click.pause(message)
