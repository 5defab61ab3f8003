"""Gateway configuration loaded from environment variables."""
from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway configuration loaded from environment variables.

    Attributes:
        host: Bind address for the listener.
        port: Port number for the listener.
        debug: Enable debug-level logging.
        shutdown_timeout: Seconds to wait for graceful shutdown.
        connection_queue_size: Maximum pending outbound messages per connection.
        await_item_submission: Hold addItem responses until the watcher
            has accepted or rejected the item.
        numeric_fields_raw: Comma-separated item fields restored to decimals.
    """

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    shutdown_timeout: float = 30.0

    connection_queue_size: int = 1000
    await_item_submission: bool = False
    numeric_fields_raw: str = (
        "salt,makerFee,takerFee,makerAssetAmount,takerAssetAmount,expirationTimeSeconds"
    )

    @computed_field
    @property
    def numeric_fields(self) -> list[str]:
        """Parse numeric item fields from comma-separated string.

        Returns:
            Field names whose string values are restored to decimals.
        """
        return [
            field.strip()
            for field in self.numeric_fields_raw.split(",")
            if field.strip()
        ]
