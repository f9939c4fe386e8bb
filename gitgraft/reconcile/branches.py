"""Branch creation, update and create-or-update reconciliation."""

import logging
from typing import Any, Callable, Dict, Optional

from .refs import branch_name, create_ref_name, update_ref_name
from ..core.errors import BuildError, NotFoundError
from ..core.github_client import GitHubClient
from ..core.types import BranchState
from ..core.options import BranchOptions

logger = logging.getLogger('gitgraft')

# Called with the desired state and the existing branch tip; returns the
# state the existing branch is actually moved to.
Rebase = Callable[[BranchOptions, str], BranchOptions]


class BranchReconciler:
    """Moves branches to a desired commit, creating them when absent."""

    def __init__(self, client: GitHubClient):
        self.client = client

    def tip(self, ref: str) -> Optional[str]:
        """Get the commit sha a branch points at, or None if it does not exist.

        Only "not found" means absent; every other failure propagates.
        """
        try:
            branch = self.client.get_branch(branch_name(ref))
        except NotFoundError:
            return None
        return branch['commit']['sha']

    def state(self, ref: str) -> BranchState:
        """Find out whether a branch exists."""
        return BranchState.NOT_EXISTS if self.tip(ref) is None else BranchState.EXISTS

    def create(self, options: BranchOptions) -> Dict[str, Any]:
        """Create the branch as refs/heads/<name>."""
        ref = create_ref_name(options.ref)
        sha = _require_sha(options)
        logger.info(f"Creating {ref} at {sha}")
        return self.client.create_ref(ref, sha)

    def update(self, options: BranchOptions) -> Dict[str, Any]:
        """Move the branch heads/<name> to the desired sha."""
        ref = update_ref_name(options.ref)
        sha = _require_sha(options)
        logger.info(f"Updating {ref} to {sha}" + (" (force)" if options.force else ""))
        return self.client.update_ref(ref, sha, force=bool(options.force))

    def create_or_update(self, options: BranchOptions, rebase: Optional[Rebase] = None) -> Dict[str, Any]:
        """Create the branch if it does not exist, otherwise update it.

        Args:
            options: Desired branch state
            rebase: Re-derives the desired state on top of the existing tip
                before an update

        Returns:
            The ref-creation or ref-update response
        """
        tip = self.tip(options.ref)
        if tip is None:
            logger.info(f"Branch {branch_name(options.ref)}: {BranchState.NOT_EXISTS.value}")
            return self.create(options)

        logger.info(f"Branch {branch_name(options.ref)}: {BranchState.EXISTS.value} at {tip}")
        if rebase is not None:
            options = rebase(options, tip)
        return self.update(options)


def _require_sha(options: BranchOptions) -> str:
    if not options.sha:
        raise BuildError(f"target sha for {options.ref} is undefined")
    return options.sha
