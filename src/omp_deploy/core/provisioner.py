# omp_deploy/core/provisioner.py
"""
Downloads and installs the open.mp server release into a target directory.

The release is a gzip-compressed tarball with a single top-level directory.
It is downloaded next to the install (`server.tar.gz`), unpacked into the
target with that top-level directory stripped away, and then removed.
"""

import logging
import os
import stat
import tarfile
from typing import Optional

import requests

from omp_deploy.config.const import (
    DOWNLOAD_TIMEOUT,
    SERVER_ARCHIVE_NAME,
    SERVER_EXECUTABLE,
    USER_AGENT,
)
from omp_deploy.core import server_check
from omp_deploy.error import MissingArgumentError, ProvisionError

logger = logging.getLogger(__name__)


def download_server_archive(
    download_url: str, archive_path: str, timeout: int = DOWNLOAD_TIMEOUT
) -> None:
    """
    Downloads the server release archive and saves the response body verbatim.

    Args:
        download_url: The HTTP(S) URL of the release archive.
        archive_path: Where to save the downloaded file.
        timeout: Connect/read timeout in seconds.

    Raises:
        MissingArgumentError: If `download_url` or `archive_path` is empty.
        ProvisionError: If the request fails, returns a non-2xx status, or the
                        file cannot be written.
    """
    if not download_url:
        raise MissingArgumentError("download_url is empty.")
    if not archive_path:
        raise MissingArgumentError("archive_path is empty.")

    logger.info(f"Downloading server archive from '{download_url}' to '{archive_path}'...")

    bytes_written = 0
    try:
        with requests.get(
            download_url,
            headers={"User-Agent": USER_AGENT},
            stream=True,
            timeout=timeout,
        ) as response:
            response.raise_for_status()
            with open(archive_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        bytes_written += len(chunk)
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to download server archive from '{download_url}': {e}")
        raise ProvisionError(
            f"Failed to download server archive from '{download_url}': {e}"
        ) from e
    except OSError as e:
        logger.error(
            f"Failed to write server archive '{archive_path}': {e}", exc_info=True
        )
        raise ProvisionError(
            f"Failed to write to archive file '{archive_path}': {e}"
        ) from e

    logger.info(f"Downloaded {bytes_written} bytes to '{archive_path}'.")


def _strip_member_name(name: str, strip_components: int) -> Optional[str]:
    """Drops the first `strip_components` path parts from an archive entry name."""
    parts = [p for p in name.replace("\\", "/").split("/") if p not in ("", ".")]
    if len(parts) <= strip_components:
        return None
    return "/".join(parts[strip_components:])


def extract_server_archive(
    archive_path: str, target_dir: str, strip_components: int = 1
) -> int:
    """
    Extracts a gzip tarball into `target_dir`, stripping leading path parts.

    Entries that are nothing but the stripped prefix (the top-level directory
    itself) are skipped.

    Args:
        archive_path: Path to the `.tar.gz` file.
        target_dir: Directory to extract into.
        strip_components: Number of leading path components to remove from
                          every entry name.

    Returns:
        The number of entries extracted.

    Raises:
        MissingArgumentError: If `archive_path` or `target_dir` is empty.
        ProvisionError: If the archive is missing, unreadable, corrupt, contains
                        an entry that would land outside `target_dir`, or
                        writing a file fails.
    """
    if not archive_path:
        raise MissingArgumentError("archive_path is empty.")
    if not target_dir:
        raise MissingArgumentError("target_dir is empty.")
    if not os.path.isfile(archive_path):
        raise ProvisionError(f"Server archive not found: '{archive_path}'")

    logger.info(f"Extracting '{archive_path}' into '{target_dir}'...")
    target_root = os.path.realpath(target_dir)
    # Extraction filters exist on newer interpreters; "tar" keeps file modes.
    extract_kwargs = {"filter": "tar"} if hasattr(tarfile, "tar_filter") else {}
    extracted = 0

    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            for member in tar.getmembers():
                new_name = _strip_member_name(member.name, strip_components)
                if new_name is None:
                    continue

                destination = os.path.realpath(os.path.join(target_root, new_name))
                if os.path.commonpath([target_root, destination]) != target_root:
                    raise ProvisionError(
                        f"Archive entry '{member.name}' would extract outside '{target_dir}'."
                    )

                member.name = new_name
                if member.islnk():
                    link_name = _strip_member_name(member.linkname, strip_components)
                    if link_name is None:
                        continue
                    member.linkname = link_name

                tar.extract(member, target_root, **extract_kwargs)
                extracted += 1
    except (tarfile.TarError, EOFError) as e:
        logger.error(f"Server archive '{archive_path}' is invalid: {e}", exc_info=True)
        raise ProvisionError(
            f"Failed to extract server archive '{archive_path}': {e}"
        ) from e
    except OSError as e:
        logger.error(
            f"Failed to extract server archive '{archive_path}': {e}", exc_info=True
        )
        raise ProvisionError(
            f"Failed to extract server archive '{archive_path}': {e}"
        ) from e

    logger.info(f"Extracted {extracted} entries into '{target_dir}'.")
    return extracted


def _make_executable(path: str) -> None:
    if not os.path.isfile(path):
        return
    try:
        mode = os.stat(path).st_mode
        os.chmod(path, mode | stat.S_IXUSR)
    except OSError as e:
        logger.warning(f"Could not mark '{path}' as executable: {e}")


def ensure_server(
    target_dir: str, download_url: str, timeout: int = DOWNLOAD_TIMEOUT
) -> bool:
    """
    Makes sure a complete server install exists in `target_dir`.

    If the install is already complete, nothing is downloaded. Otherwise the
    release archive is downloaded into `target_dir`, extracted there, and
    removed. A failed extraction leaves the archive in place.

    Args:
        target_dir: The server installation directory. Created if missing.
        download_url: Where to fetch the release archive from.
        timeout: Download timeout in seconds.

    Returns:
        True if the server was downloaded and installed, False if it was
        already complete.

    Raises:
        MissingArgumentError: If `target_dir` is empty, or `download_url` is
                              empty when a download is needed.
        ProvisionError: If creating the directory, downloading or extracting fails.
    """
    if not target_dir:
        raise MissingArgumentError("Target directory cannot be empty.")

    if not os.path.isdir(target_dir):
        logger.info(f"Target directory '{target_dir}' does not exist. Creating it.")
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as e:
            raise ProvisionError(
                f"Could not create target directory '{target_dir}': {e}"
            ) from e

    if server_check.is_server_complete(target_dir):
        logger.info(f"Server in '{target_dir}' is complete. Skipping download.")
        return False

    if not download_url:
        raise MissingArgumentError("download_url is empty.")

    archive_path = os.path.join(target_dir, SERVER_ARCHIVE_NAME)
    download_server_archive(download_url, archive_path, timeout=timeout)
    extract_server_archive(archive_path, target_dir)

    try:
        os.remove(archive_path)
        logger.debug(f"Removed temporary archive '{archive_path}'.")
    except OSError as e:
        logger.warning(f"Could not remove temporary archive '{archive_path}': {e}")

    _make_executable(os.path.join(target_dir, SERVER_EXECUTABLE))

    missing_components = server_check.find_missing_components(target_dir)
    if not server_check.server_executable_exists(target_dir) or missing_components:
        logger.warning(
            f"Server in '{target_dir}' is still incomplete after provisioning. "
            f"Missing components: {', '.join(missing_components) or 'none'}."
        )
    else:
        logger.info(f"Server installed successfully in '{target_dir}'.")
    return True
