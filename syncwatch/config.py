from pathlib import Path
from typing import List, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

from infra.config import Timeouts
from syncwatch.adapters.syncthing.discovery import GuiSettings
from syncwatch.core.accumulator import AccumulatorSettings


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class WatcherConfig(BaseSettings):
    # runtime
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    # Syncthing REST API; empty values fall back to Syncthing's config.xml
    TARGET: str = Field(default="")
    API_KEY: SecretStr = Field(default=SecretStr(""))
    USER: str = Field(default="")
    PASSWORD: SecretStr = Field(default=SecretStr(""))
    CSRF_FILE: str = Field(default="")
    SYNCTHING_HOME: str = Field(default="")

    # folder selection, comma separated ids
    FOLDERS: str = Field(default="")
    SKIP_FOLDERS: str = Field(default="")

    # aggregation
    DEBOUNCE_S: float = Field(default=0.5, gt=0)
    REMOTE_INDEX_S: float = Field(default=0.6, gt=0)
    IDLE_S: float = Field(default=2.0, gt=0)
    DIR_VS_FILES: int = Field(default=256, ge=1)
    MAX_FILES: int = Field(default=5000, ge=1)
    STALE_AFTER_S: float = Field(default=600.0, gt=0)
    RESCAN_DELAY_S: int = Field(default=3600, ge=0)
    REMINDER_S: float = Field(default=1800.0, gt=0)
    FAILURE_BACKOFF_S: float = Field(default=1.0, ge=0)

    # network
    CONFIG_SYNC_TIMEOUT_S: float = Field(default=Timeouts.CONFIG_SYNC, gt=0)
    REQUEST_TIMEOUT_S: float = Field(default=Timeouts.STANDARD, gt=0)
    SCAN_TIMEOUT_S: float = Field(default=Timeouts.SCAN, gt=0)

    class Config:
        env_prefix = "SYNCWATCH_"
        case_sensitive = False

    @model_validator(mode="after")
    def _folder_filters_exclusive(self) -> "WatcherConfig":
        if self.FOLDERS.strip() and self.SKIP_FOLDERS.strip():
            raise ValueError(
                "Either provide a list of folders to be watched or to be skipped, not both"
            )
        return self

    @property
    def watch_folders(self) -> List[str]:
        return _split(self.FOLDERS)

    @property
    def skip_folders(self) -> List[str]:
        return _split(self.SKIP_FOLDERS)

    @property
    def syncthing_home(self) -> Optional[Path]:
        return Path(self.SYNCTHING_HOME).expanduser() if self.SYNCTHING_HOME else None

    def resolve_target(self, gui: GuiSettings) -> str:
        target = self.TARGET or gui.target
        if "://" not in target:
            target = "http://" + target
        return target.rstrip("/")

    def resolve_api_key(self, gui: GuiSettings) -> str:
        return self.API_KEY.get_secret_value() or gui.api_key

    def resolve_user(self, gui: GuiSettings) -> str:
        return self.USER or gui.user

    def csrf_token(self) -> str:
        """Last line of ``CSRF_FILE``, or ``""`` when not configured."""
        if not self.CSRF_FILE:
            return ""
        lines = Path(self.CSRF_FILE).expanduser().read_text(encoding="utf-8").splitlines()
        tokens = [line.strip() for line in lines if line.strip()]
        return tokens[-1] if tokens else ""

    def accumulator_settings(self) -> AccumulatorSettings:
        return AccumulatorSettings(
            debounce=self.DEBOUNCE_S,
            remote_index=self.REMOTE_INDEX_S,
            idle=self.IDLE_S,
            dir_vs_files=self.DIR_VS_FILES,
            max_files=self.MAX_FILES,
            stale_after=self.STALE_AFTER_S,
            reminder=self.REMINDER_S,
            failure_backoff=self.FAILURE_BACKOFF_S,
        )

    def to_dict_public(self) -> dict:
        """Config without secrets, for logging."""
        return self.model_dump(exclude={"API_KEY", "PASSWORD"})
