"""
Herald Common Module

Shared infrastructure for the Slack and GitHub integrations.
"""

from .config import HeraldConfig, load_config
from .notifier import AgentNotifier, HttpAgentNotifier
from .store import AssociationStore, JsonFileAssociationStore, MemoryAssociationStore

__all__ = [
    "HeraldConfig",
    "load_config",
    "AgentNotifier",
    "HttpAgentNotifier",
    "AssociationStore",
    "JsonFileAssociationStore",
    "MemoryAssociationStore",
]
