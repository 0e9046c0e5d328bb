"""
HashiCorp Vault access for billing secrets.

AppRole login from VAULT_ADDR, VAULT_ROLE_ID and VAULT_SECRET_ID, failing fast
when any is missing. Every path is read under the 'billing/' KV v2 prefix:

    billing/database   url                     PostgreSQL DSN (required)
    billing/settings   <BillingConfig field>   scalar overrides (optional)
"""

import os
import logging
from typing import Any, Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "billing"

_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, Dict[str, Any]] = {}


def _ensure_vault_client() -> "VaultClient":
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


def reset_vault_cache() -> None:
    """Drop the singleton and cached secrets (tests, credential rotation)."""
    global _vault_client_instance
    _vault_client_instance = None
    _secret_cache.clear()


class VaultClient:
    """AppRole-authenticated reader for the billing KV mount."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_namespace: str | None = None,
    ):
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not self.vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        client_kwargs = {"url": self.vault_addr}
        if self.vault_namespace:
            client_kwargs["namespace"] = self.vault_namespace
        self.client = hvac.Client(**client_kwargs)

        try:
            login = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except (Unauthorized, Forbidden, InvalidPath) as e:
            logger.error("AppRole authentication failed: %s", e)
            raise PermissionError(f"AppRole authentication failed: {e}")
        self.client.token = login["auth"]["client_token"]

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")
        logger.info("Vault client authenticated against %s", self.vault_addr)

    def read(self, path: str) -> Dict[str, Any]:
        """
        All fields of billing/<path>.

        Raises:
            PermissionError: Path not accessible or doesn't exist.
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath:
            logger.error("Secret path not found: %s", full_path)
            raise PermissionError(f"Secret path '{full_path}' not found in Vault")
        except (Unauthorized, Forbidden) as e:
            logger.error("Access denied to secret %s: %s", full_path, e)
            raise PermissionError(f"Access denied to secret '{full_path}': {e}")
        return dict(response["data"]["data"])

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of billing/<path>.

        Raises:
            PermissionError: Path not accessible or doesn't exist.
            KeyError: Field not found in secret.
        """
        data = self.read(path)
        if field not in data:
            raise KeyError(
                f"Field '{field}' not found in secret '{_SECRET_PREFIX}/{path}'. "
                f"Available: {', '.join(sorted(data))}"
            )
        return data[field]


def _cached_read(path: str) -> Dict[str, Any]:
    if path not in _secret_cache:
        _secret_cache[path] = _ensure_vault_client().read(path)
    return _secret_cache[path]


def get_database_url() -> str:
    """PostgreSQL connection URL from billing/database."""
    data = _cached_read("database")
    if "url" not in data:
        raise KeyError("Field 'url' not found in secret 'billing/database'")
    return data["url"]


def get_billing_settings() -> Dict[str, Any]:
    """
    BillingConfig overrides from billing/settings, e.g. grace_period_days.

    The secret is optional; without it the defaults apply and this returns {}.
    """
    try:
        return dict(_cached_read("settings"))
    except PermissionError:
        logger.info("No billing/settings secret; using default billing config")
        return {}
