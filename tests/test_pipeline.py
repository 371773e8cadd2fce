import json
import tarfile
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from pterobackup.config import ServerType
from pterobackup.errors import ConfigError, NetworkError, StorageError
from pterobackup.pipeline import remove_archive, run_backup

TODAY = date(2024, 3, 9)
TOKEN_BODY = {"access_token": "ya29.abc", "token_type": "Bearer", "expires_in": 3599}


class FakeGoogle:
    """Answers the token endpoint and the upload endpoint."""

    def __init__(self, upload_status=200):
        self.upload_status = upload_status
        self.token_requests = []
        self.uploads = []

    def post(self, url, params=None, headers=None, data=None):
        resp = MagicMock()
        if "storage.googleapis.com" in url:
            body = b"".join(data)
            self.uploads.append({"url": url, "params": params, "headers": headers, "body": body})
            resp.status_code = self.upload_status
            resp.text = "{}"
        else:
            self.token_requests.append({"url": url, "data": data})
            resp.status_code = 200
            resp.json.return_value = TOKEN_BODY
            resp.text = json.dumps(TOKEN_BODY)
        return resp


def test_run_backup_end_to_end(config, tmp_path):
    google = FakeGoogle()
    result = run_backup(
        config, ServerType.SMP, exclude="logs", today=TODAY,
        session=google, show_progress=False,
    )

    assert result.object_name == "kiwi/SMP/2024-03-09_kiwi_SMP.tar.gz"
    assert result.archive_path == config.archive_dir / "2024-03-09_kiwi_SMP.tar.gz"
    assert not result.archive_path.exists()

    assert len(google.token_requests) == 1
    upload = google.uploads[0]
    assert upload["params"]["name"] == result.object_name
    assert upload["headers"]["Authorization"] == "Bearer ya29.abc"
    assert len(upload["body"]) == result.size_bytes

    uploaded = tmp_path / "uploaded.tar.gz"
    uploaded.write_bytes(upload["body"])
    with tarfile.open(uploaded, "r:gz") as tar:
        files = [m for m in tar.getmembers() if m.isfile()]
        assert [m.name for m in files] == ["world/level.dat"]
        assert tar.extractfile(files[0]).read() == b"0123456789"


def test_upload_failure_keeps_archive(config):
    google = FakeGoogle(upload_status=500)
    with pytest.raises(NetworkError):
        run_backup(config, ServerType.SMP, today=TODAY, session=google, show_progress=False)

    archive = config.archive_dir / "2024-03-09_kiwi_SMP.tar.gz"
    assert archive.exists()
    assert archive.stat().st_size > 0


def test_missing_credentials_makes_no_network_call(config):
    config.credentials_path.unlink()
    google = FakeGoogle()
    with pytest.raises(ConfigError, match="credentials"):
        run_backup(config, ServerType.SMP, today=TODAY, session=google, show_progress=False)
    assert google.token_requests == []
    assert google.uploads == []


def test_steps_run_in_order(config):
    calls = []
    with patch("pterobackup.pipeline.compress_volume", side_effect=lambda *a: calls.append("archive") or a[2].write_bytes(b"x")), \
         patch("pterobackup.pipeline.get_access_token", side_effect=lambda *a, **k: calls.append("auth") or "tok"), \
         patch("pterobackup.pipeline.upload_file", side_effect=lambda *a, **k: calls.append("upload") or "name"), \
         patch("pterobackup.pipeline.remove_archive", side_effect=lambda p: calls.append("cleanup")):
        run_backup(config, ServerType.CMP, today=TODAY, session=MagicMock(), show_progress=False)
    assert calls == ["archive", "auth", "upload", "cleanup"]


def test_remove_archive(tmp_path):
    f = tmp_path / "a.tar.gz"
    f.write_bytes(b"x")
    remove_archive(f)
    assert not f.exists()


def test_remove_archive_failure(tmp_path):
    with pytest.raises(StorageError, match="failed to delete"):
        remove_archive(tmp_path / "missing.tar.gz")
