# omp_deploy/core/server_check.py
"""Checks whether a target directory holds a complete open.mp server install.

A server counts as complete when the `omp-server` executable sits directly in
the target directory and every required component library is present under
`components/`. The check is read-only and is repeated from scratch each time.
"""

import logging
import os
from typing import List

from omp_deploy.config.const import (
    COMPONENTS_DIR,
    REQUIRED_COMPONENTS,
    SERVER_EXECUTABLE,
)
from omp_deploy.error import MissingArgumentError

logger = logging.getLogger(__name__)


def find_missing_components(target_dir: str) -> List[str]:
    """Returns the required component files absent from `target_dir/components`.

    Args:
        target_dir: The server installation directory.

    Returns:
        Missing component names, in the order they are required.

    Raises:
        MissingArgumentError: If `target_dir` is empty.
    """
    if not target_dir:
        raise MissingArgumentError("Target directory cannot be empty.")

    components_dir = os.path.join(target_dir, COMPONENTS_DIR)
    missing_components = []
    for component in REQUIRED_COMPONENTS:
        if not os.path.isfile(os.path.join(components_dir, component)):
            logger.debug(f"Required component '{component}' not found in {components_dir}.")
            missing_components.append(component)
    return missing_components


def server_executable_exists(target_dir: str) -> bool:
    """Checks for the server executable directly under `target_dir`."""
    if not target_dir:
        raise MissingArgumentError("Target directory cannot be empty.")
    return os.path.isfile(os.path.join(target_dir, SERVER_EXECUTABLE))


def is_server_complete(target_dir: str) -> bool:
    """Checks whether the executable and all required components are present.

    Args:
        target_dir: The server installation directory.

    Returns:
        True only if the executable exists and no component is missing.
    """
    missing_components = find_missing_components(target_dir)
    has_executable = server_executable_exists(target_dir)

    if not has_executable:
        logger.info(f"Server executable '{SERVER_EXECUTABLE}' not found in '{target_dir}'.")
    if missing_components:
        logger.info(
            f"{len(missing_components)} required component(s) missing in '{target_dir}': "
            f"{', '.join(missing_components)}"
        )

    complete = has_executable and not missing_components
    logger.debug(f"Server completeness for '{target_dir}': {complete}")
    return complete
