"""Core package for gitgraft."""

from .types import (
    OpType,
    BranchState,
    TreeMode,
    Operation,
    TreeEntry,
    ResultHistory,
)

from .errors import (
    GitGraftError,
    BuildError,
    TreeIntentError,
    RemoteError,
    NotFoundError,
    ConflictError,
)

from .options import (
    CommitOptions,
    BranchOptions,
    PullRequestOptions,
    UpdatePullRequestOptions,
)

from .deferred import Deferred, resolve, resolve_fields
from .github_client import GitHubClient
from .logger import setup_logging, get_logger

__all__ = [
    # Types
    'OpType',
    'BranchState',
    'TreeMode',
    'Operation',
    'TreeEntry',
    'ResultHistory',
    # Errors
    'GitGraftError',
    'BuildError',
    'TreeIntentError',
    'RemoteError',
    'NotFoundError',
    'ConflictError',
    # Options
    'CommitOptions',
    'BranchOptions',
    'PullRequestOptions',
    'UpdatePullRequestOptions',
    # Deferred values
    'Deferred',
    'resolve',
    'resolve_fields',
    # Client and logging
    'GitHubClient',
    'setup_logging',
    'get_logger',
]
