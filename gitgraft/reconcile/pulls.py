"""Pull request creation, update and create-or-update reconciliation."""

import dataclasses
import logging
from typing import Any, Dict, Optional

from .branches import BranchReconciler, Rebase
from .refs import branch_name
from ..core.errors import BuildError, ConflictError
from ..core.github_client import GitHubClient
from ..core.options import BranchOptions, PullRequestOptions, UpdatePullRequestOptions, coerce_options

logger = logging.getLogger('gitgraft')


class PullRequestReconciler:
    """Opens and updates pull requests.

    When the options carry a branch, it is created or updated first, so the
    head exists by the time the pull request is opened.
    """

    def __init__(self, client: GitHubClient, branches: Optional[BranchReconciler] = None):
        self.client = client
        self.branches = branches or BranchReconciler(client)

    def _base(self, options: PullRequestOptions) -> str:
        # An unset (or empty) base means the default branch, looked up now.
        if options.base:
            return branch_name(options.base)
        return self.client.get_default_branch()

    def ensure_branch(self, options: PullRequestOptions, rebase: Optional[Rebase] = None) -> PullRequestOptions:
        """Create or update options.branch, if set.

        Returns:
            The options without the branch, head defaulted to the branch's ref
        """
        if options.branch is None:
            return options
        branch = coerce_options(BranchOptions, options.branch)
        self.branches.create_or_update(branch, rebase)
        return dataclasses.replace(options, head=options.head or branch.ref, branch=None)

    def _open(self, options: PullRequestOptions) -> Dict[str, Any]:
        if not options.head:
            raise BuildError("pull request head is undefined")
        head = branch_name(options.head)
        base = self._base(options)
        logger.info(f"Opening pull request {head} -> {base}")
        return self.client.create_pull(options.to_request(base=base, head=head))

    def create(self, options: PullRequestOptions, rebase: Optional[Rebase] = None) -> Dict[str, Any]:
        """Open a pull request for head -> base."""
        return self._open(self.ensure_branch(options, rebase))

    def update(self, options: UpdatePullRequestOptions) -> Dict[str, Any]:
        """Update an existing pull request."""
        if options.number is None:
            raise BuildError("pull request number is undefined")
        logger.info(f"Updating pull request #{options.number}")
        return self.client.update_pull(options.number, options.to_request())

    def maybe_create(self, options: PullRequestOptions, rebase: Optional[Rebase] = None) -> Optional[Dict[str, Any]]:
        """Open a pull request unless one is already open for head -> base.

        Returns:
            The new pull request, or None when one already existed. The
            existing pull request is not fetched; use find() for that.
        """
        options = self.ensure_branch(options, rebase)
        try:
            return self._open(options)
        except ConflictError as e:
            if not e.is_existing_pull_request():
                raise
            logger.info(f"Pull request for {branch_name(options.head)} already exists, nothing created")
            return None

    def create_or_update(self, options: PullRequestOptions, rebase: Optional[Rebase] = None) -> Optional[Dict[str, Any]]:
        """Update the pull request named by options.number, or try to open one.

        Returns:
            The updated or created pull request, or None when a pull request
            for head -> base was already open
        """
        options = self.ensure_branch(options, rebase)
        if options.number is not None:
            return self.update(UpdatePullRequestOptions(
                number=options.number,
                title=options.title,
                body=options.body,
                base=branch_name(options.base) if options.base else None,
                maintainer_can_modify=options.maintainer_can_modify,
            ))
        return self.maybe_create(options)

    def find(self, options: PullRequestOptions) -> Optional[Dict[str, Any]]:
        """Get the open pull request for head -> base, if there is one."""
        if not options.head:
            raise BuildError("pull request head is undefined")
        pulls = self.client.list_pulls(head=branch_name(options.head), base=self._base(options))
        return pulls[0] if pulls else None
