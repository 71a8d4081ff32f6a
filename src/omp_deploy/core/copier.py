# omp_deploy/core/copier.py
"""
Copies asset files from the source tree into the server tree, one structure
rule at a time.

Each include pattern of a rule works in one of two modes:

- A pattern ending in a path separator (e.g. ``"data/"``) copies the whole
  directory ``<source>/<folder>/data`` into ``<target>/<folder>/data``.
- Any other pattern is a filename glob (``*`` and ``?``; ``[`` is literal),
  matched case-insensitively against file names anywhere below ``<source>/<folder>``.
  Matches keep their path relative to the folder.

Copies always overwrite; nothing is compared or skipped. Symlinked directories
are followed, each real directory at most once.
"""

import fnmatch
import logging
import os
import shutil
from typing import List

from omp_deploy.config.settings import Rule
from omp_deploy.error import CopyError, MissingArgumentError

logger = logging.getLogger(__name__)

_SEPARATORS = ("/", "\\")


def is_subtree_pattern(pattern: str) -> bool:
    """Returns True if `pattern` names a whole directory (trailing separator)."""
    return pattern.endswith(_SEPARATORS)


def matches_pattern(file_name: str, pattern: str) -> bool:
    """
    Case-insensitive glob match of a bare file name.

    Only ``*`` and ``?`` are wildcards. A ``[`` in the pattern matches itself,
    so ``"map[1].ini"`` selects exactly that file.
    """
    escaped = pattern.lower().replace("[", "[[]")
    return fnmatch.fnmatchcase(file_name.lower(), escaped)


def _to_native(relative_path: str) -> str:
    return os.path.normpath(relative_path.replace("\\", "/").replace("/", os.sep))


def _is_contained(relative_path: str) -> bool:
    """True if a normalized relative path stays below the directory it is joined to."""
    if os.path.isabs(relative_path) or os.path.splitdrive(relative_path)[0]:
        return False
    return relative_path != os.pardir and not relative_path.startswith(
        os.pardir + os.sep
    )


def _walk(source_dir: str):
    """os.walk that follows directory symlinks but never enters a real directory twice."""
    seen = set()
    for root, dirs, files in os.walk(source_dir, followlinks=True):
        real_root = os.path.realpath(root)
        if real_root in seen:
            logger.warning(f"Skipping '{root}': directory already copied (symlink loop).")
            dirs[:] = []
            continue
        seen.add(real_root)
        dirs.sort()
        yield root, files


def _copy_file(source_file: str, destination_file: str) -> None:
    os.makedirs(os.path.dirname(destination_file), exist_ok=True)
    shutil.copy2(source_file, destination_file)
    logger.debug(f"Copied '{source_file}' -> '{destination_file}'")


def copy_subtree(source_dir: str, destination_dir: str) -> List[str]:
    """
    Copies every file below `source_dir` to the same relative path below
    `destination_dir`, creating directories as needed.

    Files already present in `destination_dir` are overwritten when the
    source has the same relative path and are otherwise left alone.

    Returns:
        The destination paths written.

    Raises:
        CopyError: If `source_dir` is not a directory or a copy fails.
    """
    if not os.path.isdir(source_dir):
        raise CopyError(f"Source directory not found: '{source_dir}'")

    written = []
    try:
        os.makedirs(destination_dir, exist_ok=True)
        for root, files in _walk(source_dir):
            relative_root = os.path.relpath(root, source_dir)
            destination_root = os.path.normpath(
                os.path.join(destination_dir, relative_root)
            )
            os.makedirs(destination_root, exist_ok=True)
            for file_name in sorted(files):
                destination_file = os.path.join(destination_root, file_name)
                _copy_file(os.path.join(root, file_name), destination_file)
                written.append(destination_file)
    except OSError as e:
        logger.error(
            f"Failed to copy '{source_dir}' to '{destination_dir}': {e}", exc_info=True
        )
        raise CopyError(
            f"Failed to copy '{source_dir}' to '{destination_dir}': {e}"
        ) from e
    return written


def copy_matching_files(
    source_dir: str, destination_dir: str, pattern: str
) -> List[str]:
    """
    Copies files below `source_dir` whose names match `pattern` to the same
    relative paths below `destination_dir`.

    Directory names never match; only file names are tested. No matches is
    not an error.

    Returns:
        The destination paths written.

    Raises:
        CopyError: If `source_dir` is not a directory or a copy fails.
    """
    if not os.path.isdir(source_dir):
        raise CopyError(f"Source directory not found: '{source_dir}'")

    written = []
    try:
        for root, files in _walk(source_dir):
            for file_name in sorted(files):
                if not matches_pattern(file_name, pattern):
                    continue
                source_file = os.path.join(root, file_name)
                relative_path = os.path.relpath(source_file, source_dir)
                destination_file = os.path.join(destination_dir, relative_path)
                _copy_file(source_file, destination_file)
                written.append(destination_file)
    except OSError as e:
        logger.error(
            f"Failed to copy '{pattern}' files from '{source_dir}': {e}", exc_info=True
        )
        raise CopyError(
            f"Failed to copy '{pattern}' files from '{source_dir}' to '{destination_dir}': {e}"
        ) from e

    if not written:
        logger.debug(f"No files matching '{pattern}' under '{source_dir}'.")
    return written


def apply_rule(source_root: str, target_root: str, rule: Rule) -> List[str]:
    """
    Applies one structure rule, processing its include patterns in order.

    Args:
        source_root: The `source` directory from the settings.
        target_root: The `target` directory from the settings.
        rule: The folder and include patterns to copy.

    Returns:
        Every destination path written, in copy order.

    Raises:
        MissingArgumentError: If either root is empty.
        CopyError: If a source folder or subtree is missing, or a copy fails.
    """
    if not source_root:
        raise MissingArgumentError("Source root cannot be empty.")
    if not target_root:
        raise MissingArgumentError("Target root cannot be empty.")

    folder = _to_native(rule.folder) if rule.folder else ""
    if folder and not _is_contained(folder):
        raise CopyError(
            f"Rule folder '{rule.folder}' must be a path relative to the source "
            "and target roots.",
            folder=rule.folder,
        )
    source_dir = os.path.join(source_root, folder) if folder else source_root
    target_dir = os.path.join(target_root, folder) if folder else target_root

    logger.info(
        f"Applying rule for folder '{rule.folder}' with {len(rule.includes)} pattern(s)."
    )

    written = []
    for pattern in rule.includes:
        try:
            if is_subtree_pattern(pattern):
                subpath = _to_native(pattern.rstrip("/\\"))
                if not _is_contained(subpath):
                    raise CopyError(
                        f"Subtree pattern '{pattern}' must stay inside folder '{rule.folder}'.",
                        folder=rule.folder,
                    )
                source_subtree = os.path.join(source_dir, subpath)
                if not os.path.isdir(source_subtree):
                    raise CopyError(
                        f"Source folder '{source_subtree}' for pattern '{pattern}' does not exist.",
                        folder=rule.folder,
                    )
                os.makedirs(target_dir, exist_ok=True)
                copied = copy_subtree(source_subtree, os.path.join(target_dir, subpath))
            else:
                if not os.path.isdir(source_dir):
                    raise CopyError(
                        f"Source folder '{source_dir}' does not exist.",
                        folder=rule.folder,
                    )
                copied = copy_matching_files(source_dir, target_dir, pattern)
        except CopyError as e:
            if e.folder is None:
                e.folder = rule.folder
            raise
        except OSError as e:
            raise CopyError(
                f"Failed to prepare '{target_dir}': {e}", folder=rule.folder
            ) from e

        logger.info(f"Pattern '{pattern}' in '{rule.folder}': {len(copied)} file(s) copied.")
        written.extend(copied)

    return written
