"""
Client configuration for the Candle Auction.

Values come from the environment (optionally a .env file), matching the
variable names used by the deployment scripts: RPC_URL, PRIVATE_KEY and
CONTRACT_ADDRESS. Polling and duration knobs use a CANDLE_ prefix.
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from candle.core.errors import ConfigError
from candle.utils.logger import register_secret
from candle.utils.validation import validate_address


# Defaults mirror the reference front-end: 5s phase polls, 7s VRF polls,
# 120s commit and reveal windows.
DEFAULT_PHASE_POLL_INTERVAL = 5.0
DEFAULT_RANDOM_POLL_INTERVAL = 7.0
DEFAULT_COMMIT_DURATION = 120
DEFAULT_REVEAL_DURATION = 120
DEFAULT_REVEAL_GAS_LIMIT = 200_000


class ClientConfig(BaseModel):
    """Connection and timing parameters for one auction session"""

    rpc_url: str
    contract_address: str
    private_key: Optional[SecretStr] = None

    # Polling (seconds)
    phase_poll_interval: float = Field(DEFAULT_PHASE_POLL_INTERVAL, gt=0)
    random_poll_interval: float = Field(DEFAULT_RANDOM_POLL_INTERVAL, gt=0)
    receipt_poll_interval: float = Field(1.0, gt=0)

    # startAuction arguments (seconds)
    commit_duration: int = Field(DEFAULT_COMMIT_DURATION, gt=0)
    reveal_duration: int = Field(DEFAULT_REVEAL_DURATION, gt=0)

    # Explicit gas for revealBid; None lets the node estimate
    reveal_gas_limit: Optional[int] = Field(DEFAULT_REVEAL_GAS_LIMIT, gt=0)

    @field_validator("contract_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        ok, err = validate_address(value, "CONTRACT_ADDRESS")
        if not ok:
            raise ValueError(err)
        return value

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"RPC_URL must be an http(s) URL, got {value!r}")
        return value


# Environment variable -> ClientConfig field
ENV_FIELDS: Dict[str, str] = {
    "RPC_URL": "rpc_url",
    "CONTRACT_ADDRESS": "contract_address",
    "PRIVATE_KEY": "private_key",
    "CANDLE_PHASE_POLL_INTERVAL": "phase_poll_interval",
    "CANDLE_RANDOM_POLL_INTERVAL": "random_poll_interval",
    "CANDLE_RECEIPT_POLL_INTERVAL": "receipt_poll_interval",
    "CANDLE_COMMIT_DURATION": "commit_duration",
    "CANDLE_REVEAL_DURATION": "reveal_duration",
    "CANDLE_REVEAL_GAS_LIMIT": "reveal_gas_limit",
}


def load_config(
    env_file: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
    require_key: bool = True,
) -> ClientConfig:
    """
    Load configuration from the environment.

    Args:
        env_file: Optional .env path; when None, python-dotenv searches
            from the working directory upwards
        environ: Mapping to read instead of os.environ (tests)
        require_key: Whether PRIVATE_KEY must be present (signing commands)

    Returns:
        ClientConfig instance

    Raises:
        ConfigError: if a required variable is missing or a value is invalid
    """
    if environ is None:
        load_dotenv(dotenv_path=env_file)
        environ = dict(os.environ)

    values = {
        field_name: environ[var]
        for var, field_name in ENV_FIELDS.items()
        if environ.get(var)
    }

    missing = [var for var in ("RPC_URL", "CONTRACT_ADDRESS") if var not in environ or not environ[var]]
    if require_key and not environ.get("PRIVATE_KEY"):
        missing.append("PRIVATE_KEY")
    if missing:
        raise ConfigError(f"Missing environment variables: {', '.join(missing)}")

    try:
        config = ClientConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if config.private_key is not None:
        register_secret(config.private_key.get_secret_value())
    return config
