# omp_deploy/api/deploy.py
"""Runs a complete deployment: settings, server provisioning, asset copies.

The functions here call the core modules in order and report the outcome as
a dictionary instead of raising, so the caller chooses how to present it and
whether to exit with an error:

- `{"status": "success", "message": ..., "provisioned": bool, "rules_applied": int, "files_copied": int}`
- `{"status": "created", "message": ..., "settings_path": str}` on first run
- `{"status": "error", "error_type": str, "message": ...}` otherwise

Processing stops at the first error. Rules applied before a failing rule
stay applied.
"""
import logging
import os
from typing import Any, Dict

from omp_deploy.config.settings import Settings, find_missing_fields
from omp_deploy.context import AppContext
from omp_deploy.core import copier, provisioner
from omp_deploy.error import ConfigError, DeployError, SettingsCreated

logger = logging.getLogger(__name__)


def _error_response(error: Exception, **extra: Any) -> Dict[str, Any]:
    response = {
        "status": "error",
        "error_type": type(error).__name__,
        "message": str(error),
    }
    response.update(extra)
    return response


def validate_settings(settings: Settings) -> None:
    """Checks that every required field of `settings` is set.

    Raises:
        ConfigError: Naming exactly the missing fields.
    """
    missing = find_missing_fields(settings.to_dict())
    if missing:
        raise ConfigError(
            f"Settings are missing required field(s): {', '.join(missing)}",
            missing_fields=missing,
        )


def deploy(settings: Settings) -> Dict[str, Any]:
    """Provisions the server and applies every structure rule of `settings`.

    Args:
        settings: The loaded settings for this run.

    Returns:
        A result dictionary, see the module docstring.
    """
    try:
        validate_settings(settings)
    except ConfigError as e:
        logger.error(f"API: Invalid settings: {e}")
        return _error_response(e, missing_fields=e.missing_fields)

    try:
        source_root = os.path.expanduser(settings.source)
        target_root = os.path.expanduser(settings.target)
    except TypeError as e:
        logger.error(f"API: Invalid source/target in settings: {e}")
        return _error_response(
            ConfigError(f"'source' and 'target' must be path strings: {e}")
        )

    logger.info(f"API: Step 1 - Ensuring server files in '{target_root}'...")
    try:
        provisioned = provisioner.ensure_server(target_root, settings.url)
    except DeployError as e:
        logger.error(f"API: Server provisioning failed: {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"API: Unexpected error while provisioning: {e}", exc_info=True)
        return _error_response(
            e, message=f"An unexpected error occurred while provisioning: {e}"
        )

    logger.info(
        f"API: Step 2 - Applying {len(settings.structure)} structure rule(s) "
        f"from '{source_root}'..."
    )
    rules_applied = 0
    files_copied = 0
    for rule in settings.structure:
        try:
            written = copier.apply_rule(source_root, target_root, rule)
        except DeployError as e:
            logger.error(f"API: Rule for folder '{rule.folder}' failed: {e}")
            return _error_response(e, rules_applied=rules_applied)
        except Exception as e:
            logger.error(
                f"API: Unexpected error applying rule for '{rule.folder}': {e}",
                exc_info=True,
            )
            return _error_response(
                e,
                message=f"An unexpected error occurred while copying '{rule.folder}': {e}",
                rules_applied=rules_applied,
            )
        rules_applied += 1
        files_copied += len(written)

    logger.info(
        f"API: Deployment complete. {rules_applied} rule(s) applied, "
        f"{files_copied} file(s) copied."
    )
    return {
        "status": "success",
        "message": (
            f"Deployment complete: {files_copied} file(s) copied "
            f"by {rules_applied} rule(s)."
        ),
        "provisioned": provisioned,
        "rules_applied": rules_applied,
        "files_copied": files_copied,
    }


def run_deployment(app_context: AppContext) -> Dict[str, Any]:
    """Loads the settings held by `app_context` and deploys them.

    A missing settings file is replaced by a default one and reported with
    `status` "created"; nothing else happens in that case.

    Args:
        app_context: The context for this run.

    Returns:
        A result dictionary, see the module docstring.
    """
    logger.debug(f"API: Loading settings from '{app_context.settings_path}'.")
    try:
        settings = app_context.load()
    except SettingsCreated as e:
        logger.info(f"API: Created default settings at '{e.settings_path}'.")
        return {
            "status": "created",
            "message": (
                f"A default settings file was created at '{e.settings_path}'. "
                "Edit it to match your setup and run again."
            ),
            "settings_path": e.settings_path,
        }
    except ConfigError as e:
        logger.error(f"API: Could not load settings: {e}")
        return _error_response(e, missing_fields=e.missing_fields)

    return deploy(settings)
