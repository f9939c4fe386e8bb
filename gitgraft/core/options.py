"""Option types accepted by the pipeline's convenience builders.

Every field may hold a literal or a callable taking the result history, so
a step can refer to the output of any earlier step:

    CommitOptions(message="Add hello", tree=lambda results: results[0]['sha'])
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Type, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class CommitOptions:
    """Desired commit.

    When parents is empty, the parent is the tip of parent_ref; if
    parent_ref is unset (or missing on the remote) and use_default_branch
    is true, the tip of the default branch is used instead.
    """
    message: Any
    tree: Any
    parents: Any = None
    parent_ref: Any = None
    use_default_branch: Any = False
    author: Any = None
    committer: Any = None
    signature: Any = None

    def to_request(self, parents: List[str]) -> Dict[str, Any]:
        """Get the commit-creation request body."""
        request = {'message': self.message, 'tree': self.tree, 'parents': parents}
        for key in ('author', 'committer', 'signature'):
            value = getattr(self, key)
            if value is not None:
                request[key] = value
        return request


@dataclass(frozen=True)
class BranchOptions:
    """Desired branch state: ref name, target commit sha and force flag."""
    ref: Any
    sha: Any
    force: Any = False


@dataclass(frozen=True)
class PullRequestOptions:
    """Desired pull request.

    base defaults to the repository's default branch, looked up when the
    step executes. number identifies an existing pull request to update.
    branch (BranchOptions or a dict of its fields) is created or updated
    before the pull request is opened; head then defaults to its ref.
    """
    head: Any = None
    title: Any = None
    base: Any = None
    body: Any = None
    draft: Any = None
    maintainer_can_modify: Any = None
    issue: Any = None
    number: Any = None
    branch: Any = None

    def to_request(self, base: str, head: str) -> Dict[str, Any]:
        """Get the pull-request-creation request body."""
        request = {'head': head, 'base': base}
        for key in ('title', 'body', 'draft', 'maintainer_can_modify', 'issue'):
            value = getattr(self, key)
            if value is not None:
                request[key] = value
        return request


@dataclass(frozen=True)
class UpdatePullRequestOptions:
    """Changes to an existing pull request."""
    number: Any
    title: Any = None
    body: Any = None
    state: Any = None
    base: Any = None
    maintainer_can_modify: Any = None

    def to_request(self) -> Dict[str, Any]:
        """Get the pull-request-update request body (unset fields omitted)."""
        request = {}
        for key in ('title', 'body', 'state', 'base', 'maintainer_can_modify'):
            value = getattr(self, key)
            if value is not None:
                request[key] = value
        return request


def coerce_options(cls: Type[T], value: Any) -> T:
    """Accept either an options instance or a dict of its fields.

    Args:
        cls: Options dataclass
        value: Instance of cls or a mapping of field names to values

    Returns:
        Instance of cls

    Raises:
        TypeError: If value is neither, or has unknown keys
    """
    if isinstance(value, cls):
        return value
    if isinstance(value, dict):
        known = {f.name for f in fields(cls)}
        unknown = set(value) - known
        if unknown:
            raise TypeError(f"Unknown {cls.__name__} fields: {', '.join(sorted(unknown))}")
        return cls(**value)
    raise TypeError(f"Expected {cls.__name__} or dict, got {type(value).__name__}")
