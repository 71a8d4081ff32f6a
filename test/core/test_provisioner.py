import io
import os
import tarfile
from unittest.mock import MagicMock

import pytest
import requests

from omp_deploy.config.const import (
    COMPONENTS_DIR,
    REQUIRED_COMPONENTS,
    SERVER_ARCHIVE_NAME,
    SERVER_EXECUTABLE,
    USER_AGENT,
)
from omp_deploy.core import provisioner
from omp_deploy.error import MissingArgumentError, ProvisionError

DOWNLOAD_URL = "http://example.com/open.mp-linux-x86.tar.gz"


def _mock_response(chunks):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.iter_content.return_value = chunks
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


@pytest.fixture
def mock_get(mocker):
    return mocker.patch("omp_deploy.core.provisioner.requests.get")


# --- download_server_archive ---


def test_download_writes_body_verbatim(mock_get, tmp_path):
    mock_get.return_value = _mock_response([b"abc", b"", b"def"])
    archive = tmp_path / SERVER_ARCHIVE_NAME

    provisioner.download_server_archive(DOWNLOAD_URL, str(archive))

    assert archive.read_bytes() == b"abcdef"
    mock_get.assert_called_once_with(
        DOWNLOAD_URL,
        headers={"User-Agent": USER_AGENT},
        stream=True,
        timeout=30,
    )


def test_download_connection_error(mock_get, tmp_path):
    mock_get.side_effect = requests.exceptions.ConnectionError("unreachable")

    with pytest.raises(ProvisionError, match="unreachable"):
        provisioner.download_server_archive(
            DOWNLOAD_URL, str(tmp_path / SERVER_ARCHIVE_NAME)
        )


def test_download_http_error(mock_get, tmp_path):
    response = _mock_response([])
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(
        "404 Client Error: Not Found"
    )
    mock_get.return_value = response
    archive = tmp_path / SERVER_ARCHIVE_NAME

    with pytest.raises(ProvisionError, match="404"):
        provisioner.download_server_archive(DOWNLOAD_URL, str(archive))
    assert not archive.exists()


def test_download_write_error(mock_get, tmp_path):
    mock_get.return_value = _mock_response([b"data"])
    archive = tmp_path / "missing_dir" / SERVER_ARCHIVE_NAME

    with pytest.raises(ProvisionError, match="Failed to write"):
        provisioner.download_server_archive(DOWNLOAD_URL, str(archive))


def test_download_closes_response_on_write_error(mock_get, tmp_path):
    response = _mock_response([b"data"])
    mock_get.return_value = response
    archive = tmp_path / "missing_dir" / SERVER_ARCHIVE_NAME

    with pytest.raises(ProvisionError):
        provisioner.download_server_archive(DOWNLOAD_URL, str(archive))
    response.__exit__.assert_called_once()


def test_download_closes_response_on_success(mock_get, tmp_path):
    response = _mock_response([b"data"])
    mock_get.return_value = response

    provisioner.download_server_archive(
        DOWNLOAD_URL, str(tmp_path / SERVER_ARCHIVE_NAME)
    )
    response.__exit__.assert_called_once()


def test_download_missing_arguments():
    with pytest.raises(MissingArgumentError, match="download_url is empty"):
        provisioner.download_server_archive("", "server.tar.gz")
    with pytest.raises(MissingArgumentError, match="archive_path is empty"):
        provisioner.download_server_archive(DOWNLOAD_URL, "")


# --- extract_server_archive ---


def test_extract_strips_top_level_directory(tmp_path, server_archive_bytes):
    archive = tmp_path / SERVER_ARCHIVE_NAME
    archive.write_bytes(server_archive_bytes)
    target = tmp_path / "target"
    target.mkdir()

    provisioner.extract_server_archive(str(archive), str(target))

    assert (target / SERVER_EXECUTABLE).is_file()
    assert (target / "config.json").read_bytes() == b"{}"
    for component in REQUIRED_COMPONENTS:
        assert (target / COMPONENTS_DIR / component).is_file()
    assert not (target / "Server").exists()


def test_extract_corrupt_archive(tmp_path):
    archive = tmp_path / SERVER_ARCHIVE_NAME
    archive.write_bytes(b"this is not a tarball")

    with pytest.raises(ProvisionError, match="Failed to extract"):
        provisioner.extract_server_archive(str(archive), str(tmp_path))


def test_extract_missing_archive(tmp_path):
    with pytest.raises(ProvisionError, match="not found"):
        provisioner.extract_server_archive(
            str(tmp_path / SERVER_ARCHIVE_NAME), str(tmp_path)
        )


def test_extract_rejects_escaping_entries(tmp_path):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        info = tarfile.TarInfo("Server/../../evil.txt")
        info.size = 4
        tar.addfile(info, io.BytesIO(b"evil"))
    archive = tmp_path / SERVER_ARCHIVE_NAME
    archive.write_bytes(buffer.getvalue())
    target = tmp_path / "a" / "target"
    target.mkdir(parents=True)

    with pytest.raises(ProvisionError, match="outside"):
        provisioner.extract_server_archive(str(archive), str(target))
    assert not (tmp_path / "a" / "evil.txt").exists()
    assert not (tmp_path / "evil.txt").exists()


# --- ensure_server ---


def test_ensure_server_noop_when_complete(mock_get, tmp_path, make_complete_server):
    target = make_complete_server(tmp_path / "server")

    assert provisioner.ensure_server(str(target), DOWNLOAD_URL) is False
    mock_get.assert_not_called()


def test_ensure_server_creates_missing_target(mock_get, tmp_path, server_archive_bytes):
    mock_get.return_value = _mock_response([server_archive_bytes])
    target = tmp_path / "deep" / "server"

    assert provisioner.ensure_server(str(target), DOWNLOAD_URL) is True

    assert target.is_dir()
    assert (target / SERVER_EXECUTABLE).is_file()
    assert os.access(target / SERVER_EXECUTABLE, os.X_OK)
    assert not (target / SERVER_ARCHIVE_NAME).exists()
    mock_get.assert_called_once()


def test_ensure_server_downloads_when_component_missing(
    mock_get, tmp_path, make_complete_server, server_archive_bytes
):
    target = make_complete_server(tmp_path / "server")
    (target / COMPONENTS_DIR / "Pawn.so").unlink()
    mock_get.return_value = _mock_response([server_archive_bytes])

    assert provisioner.ensure_server(str(target), DOWNLOAD_URL) is True
    assert (target / COMPONENTS_DIR / "Pawn.so").is_file()


def test_ensure_server_keeps_archive_on_extract_failure(mock_get, tmp_path):
    mock_get.return_value = _mock_response([b"garbage"])
    target = tmp_path / "server"

    with pytest.raises(ProvisionError):
        provisioner.ensure_server(str(target), DOWNLOAD_URL)

    assert (target / SERVER_ARCHIVE_NAME).read_bytes() == b"garbage"


def test_ensure_server_archive_removal_failure_is_not_fatal(
    mock_get, mocker, tmp_path, server_archive_bytes
):
    mock_get.return_value = _mock_response([server_archive_bytes])
    mocker.patch(
        "omp_deploy.core.provisioner.os.remove", side_effect=OSError("locked")
    )
    target = tmp_path / "server"

    assert provisioner.ensure_server(str(target), DOWNLOAD_URL) is True
    assert (target / SERVER_ARCHIVE_NAME).exists()


def test_ensure_server_download_failure(mock_get, tmp_path):
    mock_get.side_effect = requests.exceptions.Timeout("timed out")

    with pytest.raises(ProvisionError, match="timed out"):
        provisioner.ensure_server(str(tmp_path / "server"), DOWNLOAD_URL)


def test_ensure_server_requires_url_only_when_downloading(
    tmp_path, make_complete_server
):
    target = make_complete_server(tmp_path / "server")
    assert provisioner.ensure_server(str(target), "") is False

    with pytest.raises(MissingArgumentError):
        provisioner.ensure_server(str(tmp_path / "other"), "")
