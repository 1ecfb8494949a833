"""Configuration and wiring for the Jira walker."""

import json
import logging
import os
import pathlib
import sys
from collections.abc import Sequence

import pydantic
import structlog

from . import restapi
from .walker import DEFAULT_PER_PAGE, IssueWalker

CONFIG_ENV_VAR = "JIRA_WALKER_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for the Jira REST client and walkers built from it."""

    base_url: str = pydantic.Field(description="Base URL of the Jira instance")
    username: str | None = pydantic.Field(
        None,
        description="Account name for basic auth; omit for bearer tokens",
    )
    api_token_file: str | None = pydantic.Field(
        None,
        description="Path to file containing the API token or password",
    )
    timeout: float = pydantic.Field(
        restapi.DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    page_size: int = pydantic.Field(
        DEFAULT_PER_PAGE,
        description="Issues requested per search page",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output on stderr.

    Walker and client events carry ``jql``/``start_at``/``endpoint`` context;
    those keys are rendered right after the message. Loggers are not cached
    so a later reconfiguration (or test capture) still takes effect.
    """
    log_level = logging.getLevelName(log_level_name.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg", "jql", "start_at", "endpoint"),
                drop_missing=True,
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def load_config(config_path: str | pathlib.Path) -> ClientConfig:
    """Load and validate a walker configuration from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the content does not match ClientConfig.
    """
    path = pathlib.Path(config_path)
    if not path.is_file():
        msg = f"Jira walker config not found: {config_path}"
        raise FileNotFoundError(msg)

    return ClientConfig.model_validate(json.loads(path.read_text()))


def create_client(config: ClientConfig) -> restapi.JiraRestApiClient:
    """Construct a REST client from validated config."""
    client = restapi.JiraRestApiClient(
        base_url=config.base_url,
        username=config.username,
        token_file=config.api_token_file,
        timeout=config.timeout,
    )
    logger.info("Created REST client", base_url=config.base_url)
    return client


def create_walker(
    config: ClientConfig,
    jql: str,
    fields: str | Sequence[str] | None = None,
    client: restapi.JiraRestApiClient | None = None,
) -> IssueWalker:
    """Build a walker for ``jql`` using the configured page size.

    A new client is created unless one is passed in.
    """
    walker: IssueWalker = IssueWalker(
        client or create_client(config),
        per_page=config.page_size,
    )
    walker.configure(jql, fields)
    return walker


def client_from_env(config_path: str | None = None) -> restapi.JiraRestApiClient:
    """Create a client using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "jira-walker.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    return create_client(config)
