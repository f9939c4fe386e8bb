"""Commit creation with parent resolution."""

import logging
from typing import Any, Dict, List

from ..core.errors import BuildError, NotFoundError
from ..core.github_client import GitHubClient
from ..core.options import CommitOptions
from .refs import branch_name

logger = logging.getLogger('gitgraft')


def resolve_parents(client: GitHubClient, options: CommitOptions) -> List[str]:
    """Get the parent shas of a commit.

    Explicit parents win. Otherwise the tip of parent_ref is used, falling
    back to the default branch when use_default_branch is set.

    Raises:
        BuildError: If no parent ref can be determined (before any request)
    """
    if options.parents:
        return list(options.parents)

    if not options.parent_ref and not options.use_default_branch:
        raise BuildError("parent ref is undefined")

    if options.parent_ref:
        ref = branch_name(options.parent_ref)
        try:
            return [client.get_branch(ref)['commit']['sha']]
        except NotFoundError:
            if not options.use_default_branch:
                raise
            logger.info(f"Parent ref {ref} not found, using the default branch")

    ref = client.get_default_branch()
    return [client.get_branch(ref)['commit']['sha']]


def create_commit(client: GitHubClient, options: CommitOptions) -> Dict[str, Any]:
    """Create a commit from resolved options."""
    if not options.tree:
        raise BuildError("commit tree is undefined")
    parents = resolve_parents(client, options)
    logger.info(f"Creating commit on {', '.join(parents)}: {options.message!r}")
    return client.create_commit(options.to_request(parents))
