"""Tests for configuration loading and client/walker wiring."""

import json
import logging
from unittest.mock import MagicMock

import pydantic
import pytest
import structlog

from jira_walker import config, walker
from jira_walker.restapi import client, types


@pytest.fixture
def config_file(tmp_path):
    """Write a minimal valid config file and return its path."""
    token_file = tmp_path / "token"
    token_file.write_text("s3cret")
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "base_url": "https://jira.example.com/",
                "username": "alice",
                "api_token_file": str(token_file),
                "page_size": 25,
            },
        ),
    )
    return path


def test_load_config_applies_defaults(config_file):
    """Unset options fall back to their defaults."""
    loaded = config.load_config(str(config_file))

    assert loaded.base_url == "https://jira.example.com/"
    assert loaded.page_size == 25
    assert loaded.timeout == client.DEFAULT_TIMEOUT
    assert loaded.log_level == "INFO"


def test_load_config_missing_file(tmp_path):
    """A missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        config.load_config(str(tmp_path / "nope.json"))


def test_config_rejects_non_positive_page_size():
    """page_size must be positive."""
    with pytest.raises(pydantic.ValidationError):
        config.ClientConfig(base_url="https://jira.example.com", page_size=0)


def test_create_client_from_config(config_file):
    """create_client() passes the config through to the REST client."""
    api_client = config.create_client(config.load_config(str(config_file)))

    assert isinstance(api_client, client.JiraRestApiClient)
    assert api_client.base_url == "https://jira.example.com"


def test_create_walker_uses_page_size_and_query():
    """The walker gets the configured page size and query."""
    service = MagicMock(spec=client.JiraRestApiClient)
    service.search.return_value = types.SearchResponse(total=0)
    cfg = config.ClientConfig(base_url="https://jira.example.com", page_size=10)

    issue_walker = config.create_walker(cfg, "project = PRJ", ["summary"], client=service)
    issue_walker.has_next()

    assert isinstance(issue_walker, walker.IssueWalker)
    service.search.assert_called_once_with(
        jql="project = PRJ",
        start_at=0,
        max_results=10,
        fields=["summary"],
    )


def test_client_from_env_reads_env_var(config_file, monkeypatch):
    """client_from_env() falls back to the path in the environment."""
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(config_file))
    configure_logging = MagicMock()
    monkeypatch.setattr(config, "configure_logging", configure_logging)

    api_client = config.client_from_env()

    assert api_client.base_url == "https://jira.example.com"
    configure_logging.assert_called_once_with("INFO")


def test_load_config_missing_file_message(tmp_path):
    """The error names the missing path."""
    missing = tmp_path / "nope.json"
    with pytest.raises(FileNotFoundError, match="Jira walker config not found"):
        config.load_config(missing)


def test_load_config_rejects_invalid_content(tmp_path):
    """A config without base_url fails validation."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"page_size": 10}))

    with pytest.raises(pydantic.ValidationError):
        config.load_config(path)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.usefixtures("reset_structlog")
def test_configure_logging_renders_logfmt_to_stderr(capsys):
    """Events go to stderr as logfmt with the query context after the message."""
    config.configure_logging("debug")

    structlog.get_logger("test").warning("Page fetch slow", start_at=50, jql="project = PRJ")

    captured = capsys.readouterr()
    assert captured.out == ""
    line = captured.err.strip()
    assert "level=warning" in line
    assert line.index('msg="Page fetch slow"') < line.index('jql="project = PRJ"')
    assert line.index('jql="project = PRJ"') < line.index("start_at=50")


@pytest.mark.usefixtures("reset_structlog")
def test_configure_logging_unknown_level_falls_back_to_info():
    """An unrecognised level name filters at INFO."""
    config.configure_logging("chatty")

    assert structlog.get_config()["wrapper_class"] is structlog.make_filtering_bound_logger(
        logging.INFO,
    )
