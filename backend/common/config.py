"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every value has a working default so the provisioner can run locally
    against the default boto3 credential chain.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Fargate Provisioner"
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: list[str] = ["*"]

    # AWS Configuration
    aws_region: str = "us-east-1"

    # State store
    # STATE_STORE: Fully-qualified Python class name of the StateStore to use.
    #   Local:       provisioner.state.FileStateStore
    #   Production:  provisioner.state.DynamoDBStateStore
    #   Tests:       provisioner.state.MemoryStateStore
    state_store: str = "provisioner.state.FileStateStore"
    state_dir: str = ".provisioner"
    state_table_name: str = ""  # Required when using DynamoDBStateStore

    # Network defaults for the generated VPC stack
    vpc_cidr_block: str = "10.0.0.0/16"
    subnet_cidr_block: str = "10.0.0.0/16"

    # Task convergence
    deploy_settle_seconds: float = 15.0  # Wait before listing tasks after deploy
    refresh_settle_seconds: float = 40.0  # Wait before listing tasks on refresh
    task_poll_interval_seconds: float = 10.0
    deploy_max_attempts: int = 10
    remove_max_attempts: int = 5

    @property
    def resolved_state_table_name(self) -> str:
        """Get DynamoDB state table name.

        Raises:
            ValueError: If not configured.
        """
        if not self.state_table_name:
            raise ValueError("STATE_TABLE_NAME must be set")
        return self.state_table_name


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
