"""
API Configuration

Centralized settings for the FastAPI application.
API metadata is hardcoded, while environment-specific settings load from .env file.
"""

from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from api.database.connection import DatabaseSettings


# Get the project root directory (one level up from api/)
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """
    Application settings for the EcoCredit API

    API metadata (title, description, version, contact) are hardcoded.
    Environment-specific settings are loaded from .env file.
    """

    # ============================================================================
    # API Metadata (hardcoded - versioned with code)
    # ============================================================================

    api_title: str = "EcoCredit Marketplace API"
    api_description: str = (
        "Fractional carbon credit marketplace. Provides endpoints for project registration, "
        "credit issuance, purchases, retirements and project validation against the "
        "MicroCredit ledger contract."
    )
    api_version: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Contact information
    contact_name: str = "EcoCreditX"
    contact_url: str = "https://github.com/ecocreditx"

    # ============================================================================
    # Environment Settings (loaded from .env)
    # ============================================================================

    environment: str = "development"  # development, staging, production
    api_port: int = 8000
    log_level: str = "INFO"

    api_key: str  # No default - must be set in .env
    admin_api_key: str  # No default - must be set in .env

    # Ledger
    network: str = "local"  # local, testnet, mainnet, previewnet
    ledger_backend: str = "local"  # local (in-process contract) or web3
    contract_id: str | None = None
    rpc_url: str | None = None
    operator_account: str = "0x00000000000000000000000000000000000003e8"
    operator_key: str | None = None  # Required for the web3 backend
    read_retries: int = 2
    local_faucet_hbar: Decimal = Decimal("10000")  # Funds new accounts on the local backend

    # Retirement audit topic
    topic_sink: str = "memory"  # memory, jsonl, http or none
    topic_id: str = "ecocredit-retirements"
    topic_relay_url: str | None = None
    topic_relay_key: str | None = None
    topic_log_path: str = "retirements.jsonl"

    # Validation workflow
    guardian_url: str = "http://localhost:3002"
    guardian_policy_id: str = "vcs-policy"
    guardian_timeout: float = 15.0
    guardian_username: str | None = None  # Logs in before the first request when set
    guardian_password: str | None = None
    poll_interval: float = 5.0
    poll_initial_delay: float = 2.0
    poll_max_attempts: int = 20

    # Client history
    history_limit: int = 50

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"), env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @property
    def contact(self) -> dict[str, str]:
        """FastAPI contact information"""
        return {"name": self.contact_name, "url": self.contact_url}

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment.lower() == "production"


# ============================================================================
# Global settings instance
# ============================================================================

settings = Settings()  # type: ignore[call-arg]  # Pydantic settings loads from env

# Database settings instance (for convenience)
db_settings = DatabaseSettings()  # type: ignore[call-arg]  # Pydantic settings loads from env
