"""Unit tests for stage master secret resolution and generation."""

from unittest.mock import patch

import pytest

from envseal.config.secrets import SecretStore, generate_stage_secret, store_stage_secret_in_keyring
from envseal.config.settings import EnvironmentPaths, Stage
from envseal.core.exceptions import ConfigurationError, SecretNotFoundError, ValidationError

SECRET = "0123456789abcdef"


@pytest.fixture
def paths(tmp_path):
    return EnvironmentPaths(tmp_path)


def test_lookup_prefers_process_environment(paths):
    paths.base_file.write_text("DEV_SECRET_KEY=from-file-secret-value\n")
    store = SecretStore(paths, environ={"DEV_SECRET_KEY": SECRET})
    assert store.get(Stage.DEV) == SECRET


def test_lookup_falls_back_to_base_file(paths):
    paths.base_file.write_text("# secrets\nQA_SECRET_KEY=from-file-secret-value\n")
    store = SecretStore(paths, environ={})
    assert store.get(Stage.QA) == "from-file-secret-value"


def test_lookup_uses_keyring_when_enabled(paths):
    store = SecretStore(paths, environ={}, use_keyring=True)
    with patch("envseal.config.secrets.keystore.load_secret", return_value=SECRET) as load:
        assert store.get(Stage.PROD) == SECRET
    load.assert_called_once_with("PROD_SECRET_KEY")


def test_keyring_not_consulted_by_default(paths):
    store = SecretStore(paths, environ={})
    with patch("envseal.config.secrets.keystore.load_secret") as load:
        with pytest.raises(SecretNotFoundError, match="DEV_SECRET_KEY"):
            store.get(Stage.DEV)
    load.assert_not_called()


def test_short_secret_is_rejected(paths):
    store = SecretStore(paths, environ={"DEV_SECRET_KEY": "short"})
    with pytest.raises(ValidationError, match="at least 16"):
        store.get(Stage.DEV)


def test_generate_stage_secret_creates_base_file(paths):
    assert generate_stage_secret(paths, Stage.DEV) is True
    content = paths.base_file.read_text()
    assert content.startswith("DEV_SECRET_KEY=")
    assert len(content.split("=", 1)[1]) == 44


def test_generate_stage_secret_skips_existing(paths):
    paths.base_file.write_text("OTHER=1\nDEV_SECRET_KEY=existing-secret-value\n")
    before = paths.base_file.read_bytes()

    assert generate_stage_secret(paths, Stage.DEV) is False
    assert paths.base_file.read_bytes() == before


def test_generate_stage_secret_replaces_when_forced(paths):
    paths.base_file.write_text("OTHER=1\nDEV_SECRET_KEY=existing-secret-value\n")

    assert generate_stage_secret(paths, Stage.DEV, skip_if_exists=False) is True
    lines = paths.base_file.read_text().split("\n")
    assert lines[0] == "OTHER=1"
    assert lines[1].startswith("DEV_SECRET_KEY=")
    assert lines[1] != "DEV_SECRET_KEY=existing-secret-value"


def test_generate_keeps_other_stage_secrets(paths):
    generate_stage_secret(paths, Stage.DEV)
    generate_stage_secret(paths, Stage.QA)
    store = SecretStore(paths, environ={})
    assert store.get(Stage.DEV) != store.get(Stage.QA)


def test_lookup_reads_quoted_base_file_value(paths):
    paths.base_file.write_text('export UAT_SECRET_KEY="quoted-secret-value"  # rotated\n')
    store = SecretStore(paths, environ={})
    assert store.get(Stage.UAT) == "quoted-secret-value"


# ==============================================================================
# Tests: OS keystore
# ==============================================================================

@pytest.fixture
def ks():
    with patch("envseal.config.secrets.keystore") as mock_keystore:
        mock_keystore.assess_keyring_backend.return_value = (True, "ok")
        mock_keystore.load_secret.return_value = None
        yield mock_keystore


def test_store_in_keyring_refuses_insecure_backend(ks):
    ks.assess_keyring_backend.return_value = (False, "insecure backend detected: PlaintextKeyring")
    with pytest.raises(ConfigurationError, match="refusing"):
        store_stage_secret_in_keyring(Stage.DEV)
    ks.save_secret.assert_not_called()


def test_store_in_keyring_generates_and_saves(ks):
    secret = store_stage_secret_in_keyring(Stage.QA)
    assert len(secret) == 44
    ks.save_secret.assert_called_once_with("QA_SECRET_KEY", secret)
    ks.delete_secret.assert_not_called()


def test_store_in_keyring_allow_insecure_skips_assessment(ks):
    store_stage_secret_in_keyring(Stage.QA, secret=SECRET, allow_insecure=True)
    ks.assess_keyring_backend.assert_not_called()
    ks.save_secret.assert_called_once_with("QA_SECRET_KEY", SECRET)


def test_store_in_keyring_keeps_existing_entry(ks):
    ks.load_secret.return_value = "existing-secret-value"
    assert store_stage_secret_in_keyring(Stage.DEV) is None
    ks.delete_secret.assert_not_called()
    ks.save_secret.assert_not_called()


def test_store_in_keyring_replace_deletes_previous_entry(ks):
    ks.load_secret.return_value = "existing-secret-value"
    secret = store_stage_secret_in_keyring(Stage.DEV, secret=SECRET, replace=True)
    assert secret == SECRET
    ks.delete_secret.assert_called_once_with("DEV_SECRET_KEY")
    ks.save_secret.assert_called_once_with("DEV_SECRET_KEY", SECRET)
