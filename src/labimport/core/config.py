# labimport/src/labimport/core/config.py

from functools import lru_cache
from pathlib import Path
from typing import Optional

import keyring
from pydantic import Field
from pydantic_settings import BaseSettings

# Name of the manifest the exporter writes at the root of every archive.
MANIFEST_NAME = ".elabftw.json"


class Settings(BaseSettings):
    database_url: Optional[str] = Field(default=None)
    db_user: str = "labimport_app"
    db_password: Optional[str] = Field(default=None)
    db_host: str = "localhost"
    db_name: str = "labimport_db"

    # Where stored uploads live and where archives get extracted
    uploads_dir: Path = Field(default=Path("uploads"))
    tmp_dir: Path = Field(default=Path("uploads") / "tmp")

    manifest_name: str = Field(default=MANIFEST_NAME)
    strict_manifest: bool = Field(default=False)
    show_progress: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "LABIMPORT_",
        "extra": "ignore",
    }

    def get_secure_value(self, key: str, default=None):
        attr_name = key.lower()
        try:
            secure = keyring.get_password("labimport", key)
            return secure or getattr(self, attr_name, default)
        except Exception:
            return getattr(self, attr_name, default)

    def build_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        password = self.get_secure_value("db_password") or ""
        return f"postgresql://{self.db_user}:{password}@{self.db_host}/{self.db_name}"


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def get_database_url() -> str:
    return get_settings().build_database_url()
