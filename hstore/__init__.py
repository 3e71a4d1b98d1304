"""hstore: hierarchical, namespaced state store with memoized getters

This package provides a centralized state container organized as a tree of
modules that each declare their own state and the handlers acting on it.

Responsibilities:
    - Module tree construction, dynamic registration and hot update
    - Namespaced routing of mutations (synchronous) and actions (async)
    - Memoized getters over an observable state tree
    - Strict mode detection of writes outside mutation handlers
    - Subscriptions, watchers and plugins

Interactions:
    - Client code through the Store API
    - asyncio for action results and deferred watcher flushes
    - Logging system for diagnostics

Cross-cutting Concerns:
    Error Handling:
        - ValidationError for malformed declarations (only under __debug__)
        - IllegalMutationError for strict mode violations
        - All other conditions are logged diagnostics that never raise

    Logging:
        - One logger per module under the "hstore" hierarchy
        - The library never configures handlers
"""

from hstore.core.base import ActionRecord, MutationRecord
from hstore.core.errors import Diagnostic, IllegalMutationError, StoreError, ValidationError
from hstore.core.modules import ActionSpec, action
from hstore.core.store import Store
from hstore.plugins.logger import create_logger
from hstore.runtime.async_support import ActionResult
from hstore.runtime.observable import to_raw

__version__ = "0.1.0"

__all__ = [
    "ActionRecord",
    "ActionResult",
    "ActionSpec",
    "Diagnostic",
    "IllegalMutationError",
    "MutationRecord",
    "Store",
    "StoreError",
    "ValidationError",
    "action",
    "create_logger",
    "to_raw",
]
