"""Tests for VaultClient - HashiCorp Vault secrets management."""

from unittest.mock import MagicMock

import pytest
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, get_billing_settings, get_database_url, reset_vault_cache


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.test:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client(monkeypatch, vault_env):
    """Stand-in for hvac.Client that authenticates and serves billing/database."""
    client = MagicMock()
    client.auth.approle.login.return_value = {"auth": {"client_token": "s.token"}}
    client.is_authenticated.return_value = True
    client.secrets.kv.v2.read_secret_version.return_value = {
        "data": {"data": {"url": "postgresql://billing@db/billing"}}
    }
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(vault_module.hvac, "Client", factory)
    reset_vault_cache()
    yield client
    reset_vault_cache()


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, monkeypatch, vault_env):
        monkeypatch.delenv("VAULT_ROLE_ID")
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_authenticates_with_approle(self, hvac_client):
        client = VaultClient()

        hvac_client.auth.approle.login.assert_called_once_with(role_id="role", secret_id="secret")
        assert client.client.token == "s.token"

    def test_rejected_approle_raises_permission_error(self, hvac_client):
        hvac_client.auth.approle.login.side_effect = Forbidden("denied")
        with pytest.raises(PermissionError, match="authentication"):
            VaultClient()

    def test_unauthenticated_after_login_raises(self, hvac_client):
        hvac_client.is_authenticated.return_value = False
        with pytest.raises(PermissionError):
            VaultClient()


class TestGetSecret:
    """Secret retrieval - paths automatically scoped to billing/."""

    def test_path_is_scoped(self, hvac_client):
        url = VaultClient().get_secret("database", "url")

        assert url == "postgresql://billing@db/billing"
        kwargs = hvac_client.secrets.kv.v2.read_secret_version.call_args.kwargs
        assert kwargs["path"] == "billing/database"

    def test_missing_path_raises(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("nope")
        with pytest.raises(PermissionError, match="not found"):
            VaultClient().get_secret("nonexistent", "url")

    def test_missing_field_raises_keyerror(self, hvac_client):
        with pytest.raises(KeyError, match="not found"):
            VaultClient().get_secret("database", "password")


class TestConvenienceFunctions:

    def test_database_url_is_cached(self, hvac_client):
        assert get_database_url() == "postgresql://billing@db/billing"
        assert get_database_url() == "postgresql://billing@db/billing"
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1

    def test_billing_settings(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"grace_period_days": "30"}}
        }

        assert get_billing_settings() == {"grace_period_days": "30"}
        kwargs = hvac_client.secrets.kv.v2.read_secret_version.call_args.kwargs
        assert kwargs["path"] == "billing/settings"

    def test_billing_settings_are_optional(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("nope")

        assert get_billing_settings() == {}
