import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pterobackup.config import load_config

TOKEN_URI = "https://oauth2.example.com/token"
CLIENT_EMAIL = "backup@test-project.iam.gserviceaccount.com"


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key):
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_key):
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def credentials_file(tmp_path, private_key_pem):
    """A service-account key file as downloaded from the cloud console."""
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps({
        "type": "service_account",
        "project_id": "test-project",
        "private_key": private_key_pem,
        "client_email": CLIENT_EMAIL,
        "token_uri": TOKEN_URI,
    }))
    return path


@pytest.fixture
def volumes(tmp_path):
    """Volume tree: <volumes>/abc-123/{world/level.dat, logs/a.log}."""
    root = tmp_path / "volumes"
    smp = root / "abc-123"
    (smp / "world").mkdir(parents=True)
    (smp / "logs").mkdir()
    (smp / "world" / "level.dat").write_bytes(b"0123456789")
    (smp / "logs" / "a.log").write_bytes(b"hello")
    (root / "def-456").mkdir()
    (root / "def-456" / "creative.dat").write_bytes(b"cmp")
    return root


@pytest.fixture
def config_file(tmp_path, volumes, credentials_file):
    archive_dir = tmp_path / "archives"
    archive_dir.mkdir()
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "server_name": "kiwi",
        "gcs_credentials": credentials_file.name,
        "bucket_name": "kiwi-backups",
        "volumes_path": str(volumes),
        "smp_uuid": "abc-123",
        "cmp_uuid": "def-456",
        "archive_dir": "archives",
    }))
    return path


@pytest.fixture
def config(config_file):
    return load_config(config_file)
