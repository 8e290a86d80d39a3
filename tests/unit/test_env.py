"""Tests for environment setup and GitHub token discovery."""

from __future__ import annotations

import os

import pytest

from genpr import env
from genpr.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in (
        "AWS_REGION",
        "AWS_REGION_NAME",
        "GEMINI_API_KEY",
        "GOOGLE_GENERATIVE_AI_API_KEY",
        "GH_TOKEN",
        "GITHUB_TOKEN",
    ):
        # setenv first so that values written by load_dotenv are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_configure_env_vars_mirrors_pairs(monkeypatch):
    monkeypatch.setenv("AWS_REGION_NAME", "us-west-2")
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")

    env.configure_env_vars()

    assert os.environ["AWS_REGION"] == "us-west-2"
    assert os.environ["GOOGLE_GENERATIVE_AI_API_KEY"] == "g-key"


def test_configure_env_vars_loads_dotenv(tmp_path):
    dotenv_file = tmp_path / ".env"
    dotenv_file.write_text("AWS_REGION=eu-central-1\n", encoding="utf-8")

    env.configure_env_vars(str(dotenv_file))

    assert os.environ["AWS_REGION"] == "eu-central-1"
    assert os.environ["AWS_REGION_NAME"] == "eu-central-1"


def test_resolve_github_token_prefers_gh_token(monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "gh")
    monkeypatch.setenv("GITHUB_TOKEN", "github")

    assert env.resolve_github_token() == "gh"


def test_resolve_github_token_falls_back_to_cli(monkeypatch):
    monkeypatch.setattr(env, "_token_from_gh_cli", lambda: "from-cli")

    assert env.resolve_github_token() == "from-cli"


def test_resolve_github_token_raises_without_token(monkeypatch):
    monkeypatch.setattr(env, "_token_from_gh_cli", lambda: None)

    with pytest.raises(ConfigurationError):
        env.resolve_github_token()
