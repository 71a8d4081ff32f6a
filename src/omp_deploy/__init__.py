# omp_deploy/__init__.py
import logging

from omp_deploy.config.const import get_installed_version

logger = logging.getLogger(__name__)

__version__ = get_installed_version()
