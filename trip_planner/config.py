"""
Configuration management for the Trip Planner system.

This module handles loading configuration for the orchestrator, the plan
store and the specialist collaborators from environment variables (and an
optional .env file).
"""

import os
from dataclasses import dataclass, field
from enum import Enum

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

SPECIALIST_KINDS = (
    "flights",
    "hotels",
    "activities",
    "destination",
    "budget",
    "itinerary",
)


class LogLevel(str, Enum):
    """Log levels supported by the system."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class APIConfig(BaseModel):
    """Configuration for the store and the external collaborators."""

    aws_region: str = Field(default="us-west-2", description="AWS region")
    plans_table_name: str = Field(
        default="travel-planner-plans", description="DynamoDB table holding plans"
    )
    dynamodb_endpoint: str | None = Field(
        default=None, description="DynamoDB endpoint URL (for local dev)"
    )
    travel_data_api_url: str | None = Field(
        default=None, description="Structured travel-data API base URL"
    )
    travel_data_api_key: str | None = Field(default=None)
    knowledge_base_url: str | None = Field(
        default=None, description="Knowledge retrieval API base URL"
    )
    knowledge_base_api_key: str | None = Field(default=None)
    gemini_api_key: str | None = Field(
        default=None, description="Enables the model-backed change classifier"
    )

    @classmethod
    def from_env(cls) -> "APIConfig":
        """Create an APIConfig from environment variables."""
        return cls(
            aws_region=os.getenv("AWS_REGION", "us-west-2"),
            plans_table_name=os.getenv("PLANS_TABLE_NAME", "travel-planner-plans"),
            dynamodb_endpoint=os.getenv("DYNAMODB_ENDPOINT"),
            travel_data_api_url=os.getenv("TRAVEL_DATA_API_URL"),
            travel_data_api_key=os.getenv("TRAVEL_DATA_API_KEY"),
            knowledge_base_url=os.getenv("KNOWLEDGE_BASE_URL"),
            knowledge_base_api_key=os.getenv("KNOWLEDGE_BASE_API_KEY"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
        )

    def missing_optional(self) -> list[str]:
        """Names of optional collaborator settings that are not configured."""
        missing = []
        if not self.travel_data_api_url:
            missing.append("TRAVEL_DATA_API_URL")
        if not self.knowledge_base_url:
            missing.append("KNOWLEDGE_BASE_URL")
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        return missing


class OrchestratorConfig(BaseModel):
    """Dispatch, retry and merge settings for the orchestrator."""

    specialist_timeouts: dict[str, float] = Field(
        default_factory=lambda: dict.fromkeys(SPECIALIST_KINDS, 30.0),
        description="Per-kind specialist timeout in seconds",
    )
    specialist_max_attempts: int = Field(
        default=2, description="Attempts for a specialist returning a retryable failure"
    )
    specialist_retry_min_wait: float = Field(default=0.5)
    specialist_retry_max_wait: float = Field(default=5.0)
    max_write_attempts: int = Field(
        default=3, description="Bound on optimistic-concurrency write retries"
    )
    daily_allowance: float = Field(
        default=70.0, description="Per-day food and local transport estimate"
    )
    default_currency: str = Field(default="USD")

    @field_validator("specialist_max_attempts", "max_write_attempts")
    @classmethod
    def validate_attempts(cls, value: int) -> int:
        """Attempt bounds must allow at least one attempt."""
        if value < 1:
            raise ValueError(f"Attempt bound must be at least 1, got {value}")
        return value

    @field_validator("specialist_timeouts")
    @classmethod
    def validate_timeouts(cls, value: dict[str, float]) -> dict[str, float]:
        """Timeouts must be positive."""
        for kind, seconds in value.items():
            if seconds <= 0:
                raise ValueError(f"Timeout for {kind} must be positive, got {seconds}")
        return value

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Create an OrchestratorConfig from environment variables."""
        default_timeout = float(os.getenv("SPECIALIST_TIMEOUT_SECONDS", "30"))
        return cls(
            specialist_timeouts={
                kind: float(
                    os.getenv(f"{kind.upper()}_TIMEOUT_SECONDS", str(default_timeout))
                )
                for kind in SPECIALIST_KINDS
            },
            specialist_max_attempts=int(os.getenv("SPECIALIST_MAX_ATTEMPTS", "2")),
            specialist_retry_min_wait=float(
                os.getenv("SPECIALIST_RETRY_MIN_WAIT", "0.5")
            ),
            specialist_retry_max_wait=float(
                os.getenv("SPECIALIST_RETRY_MAX_WAIT", "5.0")
            ),
            max_write_attempts=int(os.getenv("MAX_WRITE_ATTEMPTS", "3")),
            daily_allowance=float(os.getenv("DAILY_ALLOWANCE", "70")),
            default_currency=os.getenv("DEFAULT_CURRENCY", "USD"),
        )

    def timeout_for(self, kind: str) -> float:
        """Timeout for a specialist kind, falling back to 30 seconds."""
        return self.specialist_timeouts.get(kind, 30.0)


class SystemConfig(BaseModel):
    """System-wide configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create a SystemConfig from environment variables."""
        return cls(
            log_level=LogLevel(os.getenv("LOG_LEVEL", "INFO").upper()),
            environment=os.getenv("ENVIRONMENT", "development"),
        )


@dataclass
class TripPlannerConfig:
    """Main configuration class for the Trip Planner system."""

    api: APIConfig = field(default_factory=APIConfig.from_env)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig.from_env)
    system: SystemConfig = field(default_factory=SystemConfig.from_env)

    class ConfigurationError(Exception):
        """Exception raised for configuration validation errors."""

        pass

    def validate(self, raise_error: bool = False) -> bool:
        """
        Validate the entire configuration.

        Args:
            raise_error: If True, raise ConfigurationError instead of returning False

        Returns:
            True if configuration is valid, False otherwise

        Raises:
            ConfigurationError: If raise_error is True and validation fails
        """
        problems = []
        if not self.api.plans_table_name:
            problems.append("PLANS_TABLE_NAME must not be empty")
        if self.system.environment == "production" and self.api.dynamodb_endpoint:
            problems.append("DYNAMODB_ENDPOINT must not be set in production")

        optional_missing = self.api.missing_optional()
        if optional_missing:
            logger.warning(
                f"Optional settings missing: {', '.join(optional_missing)}. "
                f"Static catalogs and keyword classification will be used."
            )

        if problems:
            error_msg = f"Configuration validation failed: {'; '.join(problems)}"
            logger.error(error_msg)
            if raise_error:
                raise self.ConfigurationError(error_msg)
            return False

        return True


# Global configuration instance
config = TripPlannerConfig()


def initialize_config(
    custom_config_path: str | None = None,
    validate: bool = True,
    raise_on_error: bool = False,
) -> TripPlannerConfig:
    """
    Initialize and validate the configuration.

    Args:
        custom_config_path: Path to a custom .env file to load
        validate: Whether to validate the configuration
        raise_on_error: Whether to raise an exception on validation failure

    Returns:
        Initialized configuration object

    Raises:
        TripPlannerConfig.ConfigurationError: If validation fails and
            raise_on_error is True
        FileNotFoundError: If custom_config_path is provided but does not exist
    """
    if custom_config_path:
        if not os.path.exists(custom_config_path):
            error_msg = f"Custom configuration file not found: {custom_config_path}"
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        logger.info(f"Loading custom configuration from {custom_config_path}")
        load_dotenv(custom_config_path, override=True)

        # Reload in place so modules holding `config` see the new values
        config.api = APIConfig.from_env()
        config.orchestrator = OrchestratorConfig.from_env()
        config.system = SystemConfig.from_env()

    if validate:
        config.validate(raise_error=raise_on_error)

    return config
