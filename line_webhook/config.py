"""LINE webhook receiver configuration."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings, built once at startup and never mutated."""

    webhook_host: str = "0.0.0.0"
    webhook_port: int = 3000
    line_channel_secret: str = ""

    # Reject unsigned requests and refuse open mode when the secret is empty
    line_strict_signature: bool = False

    # Seconds allowed for reading the full request body
    webhook_body_timeout: float = 10.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore", "frozen": True}

    @property
    def open_mode(self) -> bool:
        """True when no channel secret is configured."""
        return not self.line_channel_secret
