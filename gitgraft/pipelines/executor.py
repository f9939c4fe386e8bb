"""Pipeline executor: runs queued operations in order against GitHub."""

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import Pipeline
from ..core.deferred import resolve, resolve_fields
from ..core.errors import BuildError
from ..core.github_client import GitHubClient
from ..core.options import (
    BranchOptions,
    CommitOptions,
    PullRequestOptions,
    UpdatePullRequestOptions,
    coerce_options,
)
from ..core.types import Operation, OpType, ResultHistory
from ..reconcile.branches import BranchReconciler
from ..reconcile.commits import create_commit
from ..reconcile.pulls import PullRequestReconciler
from ..reconcile.refs import branch_name
from ..tree.builder import TreeBuilder
from ..tree.reconciler import TreeReconciler

logger = logging.getLogger('gitgraft')

Results = Tuple[Any, ...]


class PipelineExecutor:
    """Executes a pipeline's operations strictly in order.

    Each operation's payload is resolved against the results of the
    operations before it, then handed to the handler for its kind. If an
    operation raises, execution stops and the exception propagates
    unchanged; history then holds the results of the steps that completed.

    A create-or-update of a branch that already exists moves it to a commit
    on top of its current tip: a commit made earlier in the run is re-made
    with the branch tip as parent, and its tree (when also made in this run)
    is rebuilt with the branch as edit base.
    """

    def __init__(self, client: GitHubClient, max_workers: Optional[int] = None):
        """Initialize pipeline executor.

        Args:
            client: GitHub client for the target repository
            max_workers: Maximum concurrent per-path tree resolutions
        """
        self.client = client
        self.trees = TreeReconciler(client, max_workers=max_workers)
        self.branches = BranchReconciler(client)
        self.pulls = PullRequestReconciler(client, self.branches)
        self.history = ResultHistory()
        self._built_trees: Dict[str, TreeBuilder] = {}
        self._built_commits: Dict[str, Tuple[CommitOptions, List[str]]] = {}

        self._handlers: Dict[OpType, Callable[[Any, Results], Any]] = {
            OpType.CREATE_TREE: self._create_tree,
            OpType.CREATE_COMMIT: self._create_commit,
            OpType.CREATE_BRANCH: self._create_branch,
            OpType.UPDATE_BRANCH: self._update_branch,
            OpType.CREATE_OR_UPDATE_BRANCH: self._create_or_update_branch,
            OpType.CREATE_PR: self._create_pr,
            OpType.UPDATE_PR: self._update_pr,
            OpType.CREATE_OR_UPDATE_PR: self._create_or_update_pr,
            OpType.MAYBE_CREATE_PR: self._maybe_create_pr,
            OpType.FIND_PR: self._find_pr,
        }
        missing = set(OpType) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for: {', '.join(sorted(k.value for k in missing))}")

    def execute(self, pipeline: Pipeline) -> ResultHistory:
        """Execute a pipeline.

        Args:
            pipeline: Pipeline to execute

        Returns:
            One result per operation, in order
        """
        self.history = ResultHistory()
        self._built_trees = {}
        self._built_commits = {}
        total = len(pipeline)
        logger.info(f"Executing pipeline {pipeline.name} ({total} steps) on {self.client.full_name}")

        for index, operation in enumerate(pipeline.operations):
            logger.info(f"[{index + 1}/{total}] {operation.name}")
            try:
                result = self.execute_operation(operation)
            except Exception as e:
                logger.error(
                    f"Step {index} ({operation.name}) failed: {e}. "
                    f"{len(self.history)} earlier step(s) were applied and are not rolled back"
                )
                raise
            self.history.append(result)

        logger.info(f"Pipeline {pipeline.name} completed")
        return self.history

    def execute_operation(self, operation: Operation) -> Any:
        """Resolve one operation against the history so far and run it."""
        handler = self._handlers.get(operation.kind)
        if handler is None:
            raise ValueError(f"Unknown operation: {operation.kind}")
        return handler(operation.payload, self.history.snapshot())

    def _options(self, cls, payload: Any, results: Results):
        value = resolve(payload, results)
        if value is None:
            raise BuildError(f"{cls.__name__} payload resolved to None")
        return resolve_fields(coerce_options(cls, value), results)

    def _pr_options(self, payload: Any, results: Results) -> PullRequestOptions:
        options = self._options(PullRequestOptions, payload, results)
        if options.branch is None:
            return options
        branch = resolve_fields(coerce_options(BranchOptions, options.branch), results)
        return dataclasses.replace(options, branch=branch)

    def _rebase(self, options: BranchOptions, tip: str) -> BranchOptions:
        """Re-make the commit options.sha names on top of an existing branch tip.

        Commits not made in this run, commits with explicit parents and
        commits already parented on the tip are left as they are.
        """
        built = self._built_commits.get(options.sha)
        if built is None:
            return options
        commit, parents = built
        if commit.parents or parents == [tip]:
            return options

        ref = branch_name(options.ref)
        tree = commit.tree
        builder = self._built_trees.get(tree)
        if builder is not None:
            tree = self.trees.create(builder.clone().base_ref(ref))['sha']

        rebased = create_commit(self.client, dataclasses.replace(commit, tree=tree, parents=[tip]))
        logger.info(f"Rebased commit {options.sha} onto {ref} at {tip}: {rebased['sha']}")
        return dataclasses.replace(options, sha=rebased['sha'])

    def _create_tree(self, payload: Any, results: Results) -> Dict[str, Any]:
        tree = resolve(payload, results)
        if not isinstance(tree, TreeBuilder):
            raise BuildError(f"createTree expects a TreeBuilder, got {type(tree).__name__}")
        tree = tree.clone()
        result = self.trees.create(tree)
        self._built_trees[result['sha']] = tree
        return result

    def _create_commit(self, payload: Any, results: Results) -> Dict[str, Any]:
        options = self._options(CommitOptions, payload, results)
        result = create_commit(self.client, options)
        parents = [parent['sha'] for parent in result.get('parents', [])]
        self._built_commits[result['sha']] = (options, parents)
        return result

    def _create_branch(self, payload: Any, results: Results) -> Dict[str, Any]:
        return self.branches.create(self._options(BranchOptions, payload, results))

    def _update_branch(self, payload: Any, results: Results) -> Dict[str, Any]:
        return self.branches.update(self._options(BranchOptions, payload, results))

    def _create_or_update_branch(self, payload: Any, results: Results) -> Dict[str, Any]:
        return self.branches.create_or_update(self._options(BranchOptions, payload, results), self._rebase)

    def _create_pr(self, payload: Any, results: Results) -> Dict[str, Any]:
        return self.pulls.create(self._pr_options(payload, results), self._rebase)

    def _update_pr(self, payload: Any, results: Results) -> Dict[str, Any]:
        return self.pulls.update(self._options(UpdatePullRequestOptions, payload, results))

    def _create_or_update_pr(self, payload: Any, results: Results) -> Optional[Dict[str, Any]]:
        return self.pulls.create_or_update(self._pr_options(payload, results), self._rebase)

    def _maybe_create_pr(self, payload: Any, results: Results) -> Optional[Dict[str, Any]]:
        return self.pulls.maybe_create(self._pr_options(payload, results), self._rebase)

    def _find_pr(self, payload: Any, results: Results) -> Optional[Dict[str, Any]]:
        return self.pulls.find(self._options(PullRequestOptions, payload, results))
