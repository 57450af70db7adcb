"""Token discovery for Actions runs and local use.

Order: the action input (``INPUT_TOKEN``), then ``GITHUB_TOKEN`` and the
usual aliases. A ``.env`` file is loaded first when enabled so local runs can
keep the token out of the shell history.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_VARS = ("INPUT_TOKEN", "GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT")


@dataclass
class EnvAuthConfig:
    load_dotenv: bool = True
    dotenv_path: str | None = None


class EnvironmentAuthManager:
    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False
        if config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else ['.env', '.env.local']
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # Never override values the runner already provides
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                break

    def get_github_token(self) -> str | None:
        for name in TOKEN_VARS:
            raw = os.getenv(name)
            if raw and raw.strip():
                self.logger.debug(f"Found GitHub token in {name}")
                return raw.strip()
        return None


def create_env_auth_manager(
    load_dotenv_file: bool = True, dotenv_path: str | None = None
) -> EnvironmentAuthManager:
    return EnvironmentAuthManager(EnvAuthConfig(load_dotenv=load_dotenv_file, dotenv_path=dotenv_path))


__all__ = ["EnvAuthConfig", "EnvironmentAuthManager", "TOKEN_VARS", "create_env_auth_manager"]
