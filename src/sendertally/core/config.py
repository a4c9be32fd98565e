"""sendertally configuration loaded from config.yaml + SENDERTALLY_ env vars."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict, YamlConfigSettingsSource

from sendertally.clients.gmail import MAX_PAGE_SIZE


# ---------------------------------------------------------------------------
# Nested sub-models for YAML config
# ---------------------------------------------------------------------------


class GmailSettings(BaseModel):
    """Gmail API endpoint and listing configuration."""

    user_id: str = "me"
    base_url: str = "https://gmail.googleapis.com/gmail/v1"
    page_size: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    include_spam_trash: bool = False
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_messages: int | None = Field(default=None, ge=1)


class SchedulerSettings(BaseModel):
    """Concurrency ceiling, batch size and inter-batch pacing.

    Defaults stay well under Gmail's per-user quota: 5 batches in flight,
    100 messages per batch, 80ms pause after each batch.
    """

    concurrency: int = Field(default=5, ge=1)
    batch_size: int = Field(default=100, ge=1)
    pacing_delay_ms: int = Field(default=80, ge=0)

    @property
    def pacing_delay(self) -> float:
        """Pacing delay in seconds."""
        return self.pacing_delay_ms / 1000.0


class ReportSettings(BaseModel):
    """CSV report output configuration."""

    path: Path = Path("gmail_senders_report.csv")
    top: int = Field(default=10, ge=0)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = "info"
    format: Literal["auto", "json", "console"] = "auto"

    @field_validator("level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        """Normalize to lower case and reject unknown level names."""
        normalized = v.strip().lower()
        if normalized not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unknown log level: '{v}'")
        return normalized


# ---------------------------------------------------------------------------
# Main settings class
# ---------------------------------------------------------------------------


def _resolve_config_path() -> str | None:
    """Resolve config.yaml path: SENDERTALLY_CONFIG env var or cwd default.

    An explicit SENDERTALLY_CONFIG must point at an existing file (SystemExit
    otherwise). The cwd default is optional: returns None when absent so
    the built-in defaults apply.
    """
    explicit = os.environ.get("SENDERTALLY_CONFIG")
    if explicit is None:
        path = Path("config.yaml")
        return str(path) if path.exists() else None

    path = Path(explicit)
    if not path.exists():
        print(
            f"Error: Config file not found: {path.resolve()}\n"
            f"Copy config.yaml.example to config.yaml and edit it:\n"
            f"  cp config.yaml.example config.yaml",
            file=sys.stderr,
        )
        raise SystemExit(1)
    return str(path)


def read_token_file(path: Path) -> str:
    """Read an OAuth access token from a JSON token file.

    Accepts both the ``token`` key written by google-auth's
    ``Credentials.to_json()`` and a plain ``access_token`` key.

    Raises:
        ValueError: If the file has neither key.
    """
    data = json.loads(path.read_text())
    token = data.get("token") or data.get("access_token")
    if not token:
        raise ValueError(f"No access token found in token file: {path}")
    return token


class SenderTallySettings(BaseSettings):
    """Application settings loaded from config.yaml + auth env vars.

    Non-secret configuration lives in config.yaml (gmail, scheduler, report,
    logging). The access token comes from SENDERTALLY_ACCESS_TOKEN or from a
    token file produced by whatever tool ran the OAuth consent flow.
    """

    model_config = SettingsConfigDict(
        env_prefix="SENDERTALLY_",
        case_sensitive=False,
    )

    # Credentials -- from env vars (flat, not nested)
    access_token: str = ""
    token_file: Path | None = None

    # Nested sections -- from config.yaml
    gmail: GmailSettings = GmailSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    report: ReportSettings = ReportSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Configure source priority: init > env vars > YAML config file."""
        config_path = _resolve_config_path()
        if config_path is None:
            return (init_settings, env_settings)
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_path),
        )

    @model_validator(mode="after")
    def require_credentials(self) -> Self:
        """Require either an access token or a token file."""
        if not self.access_token and self.token_file is None:
            raise ValueError(
                "No Gmail credentials configured: set SENDERTALLY_ACCESS_TOKEN "
                "or SENDERTALLY_TOKEN_FILE"
            )
        return self

    def resolve_token(self) -> str:
        """Return the bearer token, reading token_file when no token is set inline."""
        if self.access_token:
            return self.access_token
        return read_token_file(self.token_file)

    def with_overrides(
        self,
        *,
        concurrency: int | None = None,
        batch_size: int | None = None,
        pacing_delay_ms: int | None = None,
        max_messages: int | None = None,
        report_path: Path | None = None,
        top: int | None = None,
        log_format: str | None = None,
    ) -> SenderTallySettings:
        """Return a copy with CLI flag values applied over config values.

        Values are re-validated through the sub-models so a bad flag fails
        the same way a bad YAML value does.
        """
        scheduler = self.scheduler.model_dump()
        gmail = self.gmail.model_dump()
        report = self.report.model_dump()
        logging_cfg = self.logging.model_dump()

        if concurrency is not None:
            scheduler["concurrency"] = concurrency
        if batch_size is not None:
            scheduler["batch_size"] = batch_size
        if pacing_delay_ms is not None:
            scheduler["pacing_delay_ms"] = pacing_delay_ms
        if max_messages is not None:
            gmail["max_messages"] = max_messages
        if report_path is not None:
            report["path"] = report_path
        if top is not None:
            report["top"] = top
        if log_format is not None:
            logging_cfg["format"] = log_format

        return self.model_copy(
            update={
                "scheduler": SchedulerSettings.model_validate(scheduler),
                "gmail": GmailSettings.model_validate(gmail),
                "report": ReportSettings.model_validate(report),
                "logging": LoggingSettings.model_validate(logging_cfg),
            }
        )
