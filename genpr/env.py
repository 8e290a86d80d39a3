"""Environment variable setup and GitHub token discovery."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Optional

from dotenv import load_dotenv

from genpr.errors import ConfigurationError

logger = logging.getLogger(__name__)

_MIRRORED_PAIRS = (
    ("AWS_REGION", "AWS_REGION_NAME"),
    ("GEMINI_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"),
)


def configure_env_vars(dotenv_path: Optional[str] = None) -> None:
    """Load ``.env`` and mirror provider variables that go by two names."""

    load_dotenv(dotenv_path=dotenv_path)
    for primary, alias in _MIRRORED_PAIRS:
        primary_value = os.environ.get(primary)
        alias_value = os.environ.get(alias)
        if not primary_value and alias_value:
            os.environ[primary] = alias_value
        elif primary_value and not alias_value:
            os.environ[alias] = primary_value


def _token_from_gh_cli() -> Optional[str]:
    gh_path = shutil.which("gh")
    if not gh_path:
        return None
    completed = subprocess.run(
        [gh_path, "auth", "token"],
        capture_output=True,
        text=True,
        check=False,
    )
    token = (completed.stdout or "").strip()
    return token or None


def resolve_github_token() -> str:
    """Return ``GH_TOKEN``, ``GITHUB_TOKEN`` or the gh CLI token, in that order."""

    token = os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN") or _token_from_gh_cli()
    if not token:
        raise ConfigurationError(
            "GitHub token not found. Set GH_TOKEN or GITHUB_TOKEN, or authenticate with the gh CLI."
        )
    return token


__all__ = ["configure_env_vars", "resolve_github_token"]
