"""gitgraft: compose commits, branches and pull requests on GitHub as one pipeline."""

from .core import (
    BranchOptions,
    CommitOptions,
    PullRequestOptions,
    UpdatePullRequestOptions,
    GitHubClient,
    ResultHistory,
    GitGraftError,
    BuildError,
    TreeIntentError,
    RemoteError,
    NotFoundError,
    ConflictError,
)
from .tree import TreeBuilder
from .pipelines import Pipeline, PipelineExecutor, run_pipeline

__version__ = "0.1.0"

__all__ = [
    'Pipeline',
    'PipelineExecutor',
    'run_pipeline',
    'TreeBuilder',
    'BranchOptions',
    'CommitOptions',
    'PullRequestOptions',
    'UpdatePullRequestOptions',
    'GitHubClient',
    'ResultHistory',
    'GitGraftError',
    'BuildError',
    'TreeIntentError',
    'RemoteError',
    'NotFoundError',
    'ConflictError',
]
