"""
Application settings read from the environment (and an optional .env file).
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from pr_consensus.utils.config_file import DEFAULT_CONFIG_PATH

DEFAULT_CHECK_NAME = "Get Consensus"
DEFAULT_API_URL = "https://api.github.com"


class Settings(BaseModel):
    app_id: Optional[str] = None
    private_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    config_path: str = DEFAULT_CONFIG_PATH
    check_name: str = DEFAULT_CHECK_NAME
    log_level: str = "INFO"
    request_timeout: float = 10.0

    @field_validator("private_key")
    @classmethod
    def expand_newlines(cls, v):
        # Keys stored in env files usually carry literal \n sequences
        return v.replace("\\n", "\n") if v else v

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env_file: Optional .env file loaded first; existing variables win
        """
        load_dotenv(env_file)

        values = {
            "app_id": os.getenv("GITHUB_APP_ID"),
            "private_key": os.getenv("GITHUB_APP_PRIVATE_KEY"),
            "webhook_secret": os.getenv("GITHUB_WEBHOOK_SECRET"),
            "api_url": os.getenv("GITHUB_API_URL"),
            "config_path": os.getenv("CONSENSUS_CONFIG_PATH"),
            "check_name": os.getenv("CONSENSUS_CHECK_NAME"),
            "log_level": os.getenv("CONSENSUS_LOG_LEVEL"),
            "request_timeout": os.getenv("GITHUB_REQUEST_TIMEOUT"),
        }
        return cls(**{key: value for key, value in values.items() if value})
