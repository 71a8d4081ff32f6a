import io
import json
import logging
import tarfile

import pytest

from omp_deploy.config.const import (
    COMPONENTS_DIR,
    REQUIRED_COMPONENTS,
    SERVER_EXECUTABLE,
)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Closes any handlers a test attached to the package logger."""
    yield
    logger = logging.getLogger("omp_deploy")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def make_complete_server():
    """Returns a function that lays out a complete server install in a directory."""

    def _make(target_dir):
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / SERVER_EXECUTABLE).write_bytes(b"#!/bin/sh\n")
        components_dir = target_dir / COMPONENTS_DIR
        components_dir.mkdir(exist_ok=True)
        for component in REQUIRED_COMPONENTS:
            (components_dir / component).write_bytes(b"ELF")
        return target_dir

    return _make


def _add_bytes(tar, name, data, mode=0o644):
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    tar.addfile(info, io.BytesIO(data))


def _add_dir(tar, name):
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tar.addfile(info)


@pytest.fixture
def server_archive_bytes():
    """A gzip tarball shaped like an open.mp release, with a 'Server/' top directory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        _add_dir(tar, "Server")
        _add_bytes(tar, f"Server/{SERVER_EXECUTABLE}", b"#!/bin/sh\necho omp\n", 0o755)
        _add_dir(tar, f"Server/{COMPONENTS_DIR}")
        for component in REQUIRED_COMPONENTS:
            _add_bytes(tar, f"Server/{COMPONENTS_DIR}/{component}", b"ELF")
        _add_bytes(tar, "Server/config.json", b"{}")
    return buffer.getvalue()


@pytest.fixture
def write_settings(tmp_path):
    """Returns a function that writes a settings document and returns its path."""

    def _write(data, name="settings.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return _write
