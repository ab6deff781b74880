"""Configuration models describing Stoya settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StoyaBaseModel(BaseModel):
    """Shared configuration for Stoya Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class StoreSettings(StoyaBaseModel):
    """Remote object store connection and layout.

    Attributes:
        base_url: Resource endpoint of the remote store API.
        token: OAuth token sent with every API call.
        app_root: Folder holding the screen folders and service folders.
        moderator_folder: Name of the shared pending folder under ``app_root``.
        clients_folder: Name of the credential-record folder under ``app_root``.
        screen_prefix: Display-name prefix identifying screen folders.
        root_listing_limit: Maximum entries requested when listing ``app_root``.
        folder_listing_limit: Maximum entries requested when listing a folder.
        timeout_seconds: Per-request timeout.
    """

    base_url: str = "https://cloud-api.yandex.net/v1/disk/resources"
    token: Optional[str] = None
    app_root: str = "/Приложения/Стоя/Мой проект"
    moderator_folder: str = "Модератор"
    clients_folder: str = "Клиенты"
    screen_prefix: str = "Экран"
    root_listing_limit: int = 100
    folder_listing_limit: int = 1_000
    timeout_seconds: float = 30.0


class RetrySettings(StoyaBaseModel):
    """Backoff rules applied by the resilient remote client.

    Attributes:
        max_retries: Retries allowed per call after the first request.
        lock_delay_min_seconds: Lower bound of the randomized wait after HTTP 423.
        lock_delay_max_seconds: Upper bound of the randomized wait after HTTP 423.
        rate_limit_step_seconds: Wait multiplier after HTTP 429/5xx.
        network_delay_seconds: Flat wait after a transport failure.
    """

    max_retries: int = 3
    lock_delay_min_seconds: float = 3.0
    lock_delay_max_seconds: float = 5.0
    rate_limit_step_seconds: float = 1.5
    network_delay_seconds: float = 2.0


class LLMSettings(StoyaBaseModel):
    """LLM configuration options for the safety classifier.

    Attributes:
        provider: Identifier for the language-model provider.
        model: Model name to target when issuing requests.
        temperature: Sampling temperature for generative calls.
        max_tokens: Maximum number of tokens in responses.
        api_key: Optional credential for hosted providers.
        api_base_url: Optional custom endpoint for OpenAI-compatible gateways.
    """

    provider: str = "gemini"
    model: str = "gemini/gemini-2.5-flash"
    temperature: float = 0.0
    max_tokens: int = 1_000
    api_key: Optional[str] = None
    api_base_url: Optional[str] = None


class UploadSettings(StoyaBaseModel):
    """Rules applied to submissions.

    Attributes:
        screen_capacity: Published files a screen may hold.
        max_video_seconds: Longest accepted video.
        display_days: Days a published file stays on screen.
    """

    screen_capacity: int = 20
    max_video_seconds: float = 15.0
    display_days: int = 30


class PollingSettings(StoyaBaseModel):
    """Reconcile cadence.

    Attributes:
        interval_seconds: Delay between reconcile passes for the selected screen.
    """

    interval_seconds: float = 5.0


class LoggingSettings(StoyaBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; console only when unset.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(StoyaBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class StoyaConfig(StoyaBaseModel):
    """Top-level configuration struct for Stoya.

    Attributes:
        store: Remote store settings.
        retry: Remote client backoff rules.
        llm: Safety classifier model settings.
        uploads: Submission rules.
        polling: Reconcile cadence.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    store: StoreSettings = Field(default_factory=StoreSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "StoyaBaseModel",
    "StoreSettings",
    "RetrySettings",
    "LLMSettings",
    "UploadSettings",
    "PollingSettings",
    "LoggingSettings",
    "CLIOptions",
    "StoyaConfig",
]
