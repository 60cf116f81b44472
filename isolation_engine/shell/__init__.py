"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Virology API client (HTTP)
- Isolation store (Firestore)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from isolation_engine.shell.virology_client import VirologyClient
from isolation_engine.shell.isolation_store import IsolationStore
from isolation_engine.shell.config_loader import load_config, AppConfig

__all__ = [
    "VirologyClient",
    "IsolationStore",
    "load_config",
    "AppConfig",
]
