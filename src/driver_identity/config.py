"""Environment configuration for the driver identity service.

Required variables
------------------
``API_ENDPOINT``
    Ledger JSON-RPC URL. ``file://<path>`` selects the local NDJSON ledger.
``IDENTITY_PACKAGE_ID``
    On-ledger identity package object id (``0x`` + hex).
``VAULT_PASSWORD``
    Passphrase protecting the per-actor key vault files.

All other settings have defaults; see :class:`Settings`.
"""
from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from driver_identity.errors import ConfigError

DEFAULT_FAUCET_ENDPOINT: str = "https://faucet.testnet.iota.cafe/v1/gas"
DEFAULT_PORT: int = 3002
DEFAULT_GAS_BUDGET: int = 50_000_000

_OBJECT_ID_PATTERN = re.compile(r"^0x[0-9a-fA-F]{1,64}$")

_REQUIRED: dict[str, str] = {
    "API_ENDPOINT": "api_endpoint",
    "IDENTITY_PACKAGE_ID": "identity_package_id",
    "VAULT_PASSWORD": "vault_password",
}

_OPTIONAL: dict[str, str] = {
    "FAUCET_ENDPOINT": "faucet_endpoint",
    "STATE_DIR": "state_dir",
    "LEDGER_TIMEOUT_SECONDS": "ledger_timeout_seconds",
    "GAS_BUDGET": "gas_budget",
    "PRESENTATION_VALIDITY_MINUTES": "presentation_validity_minutes",
    "VERIFICATION_FAILURE_POLICY": "failure_policy",
    "RESOLVER_CACHE": "resolver_cache",
    "HOST": "host",
    "PORT": "port",
}


class Settings(BaseModel):
    """Validated process configuration.

    Build it with :meth:`from_env`; direct construction is meant for tests.
    """

    api_endpoint: str
    identity_package_id: str
    vault_password: SecretStr
    faucet_endpoint: str = DEFAULT_FAUCET_ENDPOINT
    state_dir: Path = Path(".")
    ledger_timeout_seconds: float = Field(default=30.0, gt=0)
    gas_budget: int = Field(default=DEFAULT_GAS_BUDGET, gt=0)
    presentation_validity_minutes: int = Field(default=10, gt=0)
    failure_policy: str = "first_error"
    resolver_cache: bool = True
    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, gt=0, lt=65536)

    @field_validator("api_endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        if not value.startswith(("http://", "https://", "file://")):
            raise ValueError("must be an http(s):// or file:// URL")
        return value

    @field_validator("identity_package_id")
    @classmethod
    def validate_package_id(cls, value: str) -> str:
        if not _OBJECT_ID_PATTERN.match(value):
            raise ValueError("is not a valid object id (expected 0x followed by hex digits)")
        return value.lower()

    @field_validator("vault_password")
    @classmethod
    def validate_password(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("must not be empty")
        return value

    @field_validator("failure_policy")
    @classmethod
    def validate_policy(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"first_error", "all_errors"}:
            raise ValueError("must be 'first_error' or 'all_errors'")
        return normalized

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Read settings from the process environment (or *environ*).

        Raises
        ------
        ConfigError
            Naming every missing required variable, or every invalid value.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in _REQUIRED if not env.get(name)]
        if missing:
            raise ConfigError(
                "missing environment variable(s): " + ", ".join(missing)
            )

        values: dict[str, str] = {}
        for name, attr in {**_REQUIRED, **_OPTIONAL}.items():
            if env.get(name):
                values[attr] = env[name]

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            env_names = {attr: name for name, attr in {**_REQUIRED, **_OPTIONAL}.items()}
            problems = [
                f"{env_names.get(str(err['loc'][0]), err['loc'][0])} {err['msg']}"
                for err in exc.errors()
            ]
            raise ConfigError("invalid configuration: " + "; ".join(problems)) from exc

    @property
    def uses_local_ledger(self) -> bool:
        """``True`` when ``API_ENDPOINT`` points at a local ``file://`` ledger."""
        return self.api_endpoint.startswith("file://")

    @property
    def local_ledger_path(self) -> Path:
        """Filesystem path of the local ledger (only meaningful for ``file://``)."""
        return Path(self.api_endpoint[len("file://"):])


__all__ = ["Settings", "DEFAULT_FAUCET_ENDPOINT", "DEFAULT_GAS_BUDGET", "DEFAULT_PORT"]
