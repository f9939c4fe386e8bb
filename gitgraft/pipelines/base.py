"""Pipeline class with fluent API for composing GitHub operations."""

import logging
from typing import Any, Callable, Optional, Tuple, TYPE_CHECKING

from ..core.deferred import Deferred
from ..core.options import (
    BranchOptions,
    CommitOptions,
    PullRequestOptions,
    UpdatePullRequestOptions,
)
from ..core.types import Operation, OpType, ResultHistory
from ..tree.builder import TreeBuilder

if TYPE_CHECKING:
    from ..core.github_client import GitHubClient

logger = logging.getLogger('gitgraft')


class StepRef:
    """Handle on the result of the step at a given position.

    Used to build deferred values that read an earlier step's output:

        tree = pipeline.step(0)
        pipeline.create_commit(CommitOptions(message="m", tree=tree.get('sha')))
    """

    def __init__(self, index: int):
        self.index = index

    def __call__(self, results: Tuple[Any, ...]) -> Any:
        return results[self.index]

    def get(self, *keys: Any) -> Callable[[Tuple[Any, ...]], Any]:
        """Get a deferred accessor for a nested value of this step's result.

        Args:
            *keys: Keys (or indices) followed from the result downwards

        Returns:
            Callable taking the result history
        """
        def accessor(results: Tuple[Any, ...]) -> Any:
            value = results[self.index]
            for key in keys:
                value = value[key]
            return value
        return accessor

    @property
    def sha(self) -> Callable[[Tuple[Any, ...]], Any]:
        """Deferred sha of a tree, commit or blob result."""
        return self.get('sha')

    def __repr__(self) -> str:
        return f"StepRef({self.index})"


class Pipeline:
    """Immutable, ordered queue of GitHub operations.

    Every builder method returns a new Pipeline with one more operation;
    the receiver is left unchanged. run() executes the operations in the
    order they were added and returns one result per operation.

    Payloads are either literal options or callables taking the tuple of
    results produced by the steps before them.

    Example usage:
        pipeline = (
            Pipeline("add-hello")
            .create_tree(TreeBuilder().base_ref("feat").text("hello.txt", "Hi"))
            .create_commit(lambda r: CommitOptions(
                message="Add hello", tree=r[0]['sha'],
                parent_ref="feat", use_default_branch=True,
            ))
            .create_or_update_branch(lambda r: BranchOptions(ref="feat", sha=r[1]['sha']))
            .maybe_create_pr(PullRequestOptions(head="feat", title="Add hello"))
        )
        results = pipeline.run(client)

    Execution is not transactional: if a step fails, the steps before it
    have already changed the repository and are not rolled back.
    """

    name: str = "pipeline"
    description: str = ""

    def __init__(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        operations: Tuple[Operation, ...] = ()
    ):
        """Initialize a pipeline.

        Args:
            name: Pipeline name (overrides class attribute)
            description: Pipeline description (overrides class attribute)
            operations: Operations already queued
        """
        if name:
            self.name = name
        if description:
            self.description = description
        self._operations = tuple(operations)

    @property
    def operations(self) -> Tuple[Operation, ...]:
        """Queued operations in execution order."""
        return self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def step(self, index: int) -> StepRef:
        """Get a handle on the result of the step at index.

        Negative indices count back from the last queued step.
        """
        if index < 0:
            index += len(self._operations)
        if not 0 <= index < len(self._operations):
            raise IndexError(f"Pipeline has no step {index}")
        return StepRef(index)

    def last(self) -> StepRef:
        """Get a handle on the result of the most recently added step."""
        return self.step(-1)

    def op(self, kind: OpType, payload: Deferred[Any]) -> 'Pipeline':
        """Append an operation.

        Args:
            kind: Operation kind
            payload: Options, or a callable taking the result history

        Returns:
            New pipeline with the operation appended
        """
        if not isinstance(kind, OpType):
            raise TypeError(f"Unknown operation kind: {kind!r}")
        # Builders are mutable; later changes must not reach a queued step.
        if isinstance(payload, TreeBuilder):
            payload = payload.clone()
        return Pipeline(
            name=self.name,
            description=self.description,
            operations=self._operations + (Operation(kind, payload),)
        )

    def create_tree(self, tree: Deferred[TreeBuilder]) -> 'Pipeline':
        """Append a tree creation; its result is the tree-creation response."""
        return self.op(OpType.CREATE_TREE, tree)

    def create_commit(self, options: Deferred[CommitOptions]) -> 'Pipeline':
        """Append a commit creation; its result is the commit-creation response."""
        return self.op(OpType.CREATE_COMMIT, options)

    def create_branch(self, options: Deferred[BranchOptions]) -> 'Pipeline':
        """Append a branch creation (refs/heads/<name>)."""
        return self.op(OpType.CREATE_BRANCH, options)

    def update_branch(self, options: Deferred[BranchOptions]) -> 'Pipeline':
        """Append a branch update (heads/<name>)."""
        return self.op(OpType.UPDATE_BRANCH, options)

    def create_or_update_branch(self, options: Deferred[BranchOptions]) -> 'Pipeline':
        """Append a branch creation, or an update if the branch already exists."""
        return self.op(OpType.CREATE_OR_UPDATE_BRANCH, options)

    def create_pr(self, options: Deferred[PullRequestOptions]) -> 'Pipeline':
        """Append a pull request creation."""
        return self.op(OpType.CREATE_PR, options)

    def update_pr(self, options: Deferred[UpdatePullRequestOptions]) -> 'Pipeline':
        """Append a pull request update."""
        return self.op(OpType.UPDATE_PR, options)

    def create_or_update_pr(self, options: Deferred[PullRequestOptions]) -> 'Pipeline':
        """Append a pull request update (when a number is given) or creation.

        If a pull request for head -> base is already open, the step's
        result is None. The existing pull request is not fetched; add a
        find_pr() step to get it.
        """
        return self.op(OpType.CREATE_OR_UPDATE_PR, options)

    def maybe_create_pr(self, options: Deferred[PullRequestOptions]) -> 'Pipeline':
        """Append a pull request creation whose result is None if one is already open."""
        return self.op(OpType.MAYBE_CREATE_PR, options)

    def find_pr(self, options: Deferred[PullRequestOptions]) -> 'Pipeline':
        """Append a lookup of the open pull request for head -> base (None if absent)."""
        return self.op(OpType.FIND_PR, options)

    def run(self, client: 'GitHubClient', max_workers: Optional[int] = None) -> ResultHistory:
        """Execute the pipeline.

        Args:
            client: GitHub client for the target repository
            max_workers: Maximum concurrent per-path tree resolutions

        Returns:
            One result per operation, in order
        """
        from .executor import PipelineExecutor
        logger.debug(f"Running pipeline {self.name}:\n{self.describe()}")
        return PipelineExecutor(client, max_workers=max_workers).execute(self)

    def describe(self) -> str:
        """Get a description of this pipeline's steps."""
        parts = [f"Pipeline: {self.name}"]
        if self.description:
            parts.append(f"  {self.description}")
        for index, operation in enumerate(self._operations):
            line = f"  [{index}] {operation.name}"
            if isinstance(operation.payload, TreeBuilder):
                details = operation.payload.describe()
                if details:
                    line += ": " + ", ".join(details)
            elif callable(operation.payload):
                line += " (computed at run time)"
            parts.append(line)
        if not self._operations:
            parts.append("  (no operations)")
        return "\n".join(parts)


def run_pipeline(
    build: Callable[[Pipeline], Pipeline],
    client: 'GitHubClient',
    max_workers: Optional[int] = None
) -> ResultHistory:
    """Build a pipeline from an empty one and run it.

    Args:
        build: Callable receiving an empty Pipeline and returning the full one
        client: GitHub client for the target repository
        max_workers: Maximum concurrent per-path tree resolutions

    Returns:
        One result per operation, in order
    """
    return build(Pipeline()).run(client, max_workers=max_workers)
