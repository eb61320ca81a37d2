import os
import sys
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zipfinder.archive.handler import SUPPORTED_EXTENSIONS


def _default_data_dir() -> Path:
    if env := os.environ.get("ZF_DATA_DIR"):
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "com.zipfinder.app"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ZF_",
        extra="ignore",
    )

    data_dir: Path = Path("")
    db_path: Path = Path("")
    download_dir: Path = Path("")
    archive_extensions: list[str] = [".zip", ".7z"]
    default_page_size: int = 50
    extract_overwrite: bool = True
    host: str = "127.0.0.1"
    port: int = 8426

    @field_validator("archive_extensions")
    @classmethod
    def _normalise_extensions(cls, value: list[str]) -> list[str]:
        normalised = [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]
        unknown = sorted(set(normalised) - SUPPORTED_EXTENSIONS)
        if unknown:
            raise ValueError(
                f"Unsupported archive extensions {unknown}; "
                f"choose from {sorted(SUPPORTED_EXTENSIONS)}"
            )
        return normalised

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> "Settings":
        if self.data_dir == Path(""):
            self.data_dir = _default_data_dir()
        if self.db_path == Path(""):
            self.db_path = self.data_dir / "cache.sqlite"
        if self.download_dir == Path(""):
            self.download_dir = Path.home() / "Downloads"
        return self


settings = Settings()
