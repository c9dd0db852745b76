"""
Configuration Management for Herald

Loads configuration from ~/.herald/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger("herald.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".herald"
CONFIG_PATH = CONFIG_DIR / "config.json"
ASSOCIATIONS_PATH = CONFIG_DIR / "associations.json"

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

DEFAULT_SUPPORTED_FILE_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "text/plain",
    "text/csv",
    "text/markdown",
    "text/html",
    "application/json",
    "application/pdf",
]


@dataclass
class GitHubConfig:
    """GitHub App webhook configuration"""
    webhook_secret: str = ""
    bot_login: str = ""  # with or without the "[bot]" suffix


@dataclass
class SlackConfig:
    """Slack app configuration"""
    bot_token: str = ""
    signing_secret: str = ""
    supported_file_types: List[str] = field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_FILE_TYPES)
    )
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_concurrency: int = 16  # directory lookups / downloads in flight


@dataclass
class AgentConfig:
    """Agent runtime the normalized messages are delivered to"""
    runtime_url: str = ""
    api_token: str = ""


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class StoreConfig:
    """PR/issue association store configuration"""
    path: str = str(ASSOCIATIONS_PATH)


@dataclass
class HeraldConfig:
    """Main Herald configuration"""
    github: GitHubConfig = field(default_factory=GitHubConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


def _parse_github_config(data: dict) -> GitHubConfig:
    """Parse github section from config dict"""
    github_data = data.get("github", {})
    return GitHubConfig(
        webhook_secret=github_data.get("webhook_secret", ""),
        bot_login=github_data.get("bot_login", ""),
    )


def _parse_slack_config(data: dict) -> SlackConfig:
    """Parse slack section from config dict"""
    slack_data = data.get("slack", {})
    return SlackConfig(
        bot_token=slack_data.get("bot_token", ""),
        signing_secret=slack_data.get("signing_secret", ""),
        supported_file_types=slack_data.get(
            "supported_file_types", list(DEFAULT_SUPPORTED_FILE_TYPES)
        ),
        max_file_size=slack_data.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
        max_concurrency=slack_data.get("max_concurrency", 16),
    )


def _parse_agent_config(data: dict) -> AgentConfig:
    """Parse agent section from config dict"""
    agent_data = data.get("agent", {})
    return AgentConfig(
        runtime_url=agent_data.get("runtime_url", ""),
        api_token=agent_data.get("api_token", ""),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8080),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(path=store_data.get("path", str(ASSOCIATIONS_PATH)))


def load_config() -> HeraldConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.herald/config.json)
    3. Default values
    """
    config = HeraldConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.github = _parse_github_config(data)
            config.slack = _parse_slack_config(data)
            config.agent = _parse_agent_config(data)
            config.server = _parse_server_config(data)
            config.store = _parse_store_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    # Environment variable overrides
    if os.getenv("GITHUB_WEBHOOK_SECRET"):
        config.github.webhook_secret = os.getenv("GITHUB_WEBHOOK_SECRET")
    if os.getenv("GITHUB_BOT_LOGIN"):
        config.github.bot_login = os.getenv("GITHUB_BOT_LOGIN")

    if os.getenv("SLACK_BOT_TOKEN"):
        config.slack.bot_token = os.getenv("SLACK_BOT_TOKEN")
    if os.getenv("SLACK_SIGNING_SECRET"):
        config.slack.signing_secret = os.getenv("SLACK_SIGNING_SECRET")
    if os.getenv("SLACK_MAX_FILE_SIZE"):
        config.slack.max_file_size = int(os.getenv("SLACK_MAX_FILE_SIZE"))

    if os.getenv("HERALD_AGENT_URL"):
        config.agent.runtime_url = os.getenv("HERALD_AGENT_URL")
    if os.getenv("HERALD_AGENT_TOKEN"):
        config.agent.api_token = os.getenv("HERALD_AGENT_TOKEN")

    if os.getenv("HERALD_HOST"):
        config.server.host = os.getenv("HERALD_HOST")
    if os.getenv("HERALD_PORT"):
        config.server.port = int(os.getenv("HERALD_PORT"))

    if os.getenv("HERALD_STORE_PATH"):
        config.store.path = os.getenv("HERALD_STORE_PATH")

    return config


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
