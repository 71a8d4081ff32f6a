# omp_deploy/utils/general.py
import sys
import logging

from colorama import Fore, Style, init

logger = logging.getLogger(__name__)

# Constants for message display
_INFO_PREFIX = Fore.CYAN + "[INFO] " + Style.RESET_ALL
_OK_PREFIX = Fore.GREEN + "[OK] " + Style.RESET_ALL
_WARN_PREFIX = Fore.YELLOW + "[WARN] " + Style.RESET_ALL
_ERROR_PREFIX = Fore.RED + "[ERROR] " + Style.RESET_ALL


def startup_checks(app_name=None, version=None):
    """Perform initial checks when the tool starts."""

    if sys.version_info < (3, 10):
        logger.critical("Python version is less than 3.10. Exiting.")
        sys.exit("This tool requires Python 3.10 or later.")

    logger.info(f"Starting {app_name} v{version}....")

    init(autoreset=True)  # Initialize colorama
    logger.debug("colorama initialized")
