"""Core types for the operation pipeline."""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Iterator, Tuple
from enum import Enum


class OpType(Enum):
    """Kind of a pipeline operation."""
    CREATE_TREE = "createTree"
    CREATE_COMMIT = "createCommit"
    CREATE_BRANCH = "createBranch"
    UPDATE_BRANCH = "updateBranch"
    CREATE_OR_UPDATE_BRANCH = "createOrUpdateBranch"
    CREATE_PR = "createPR"
    UPDATE_PR = "updatePR"
    CREATE_OR_UPDATE_PR = "createOrUpdatePR"
    MAYBE_CREATE_PR = "maybeCreatePR"
    FIND_PR = "findPR"


class BranchState(Enum):
    """Existence of a branch as observed by the branch reconciler."""
    NOT_EXISTS = "not_exists"
    EXISTS = "exists"


class TreeMode:
    """File modes accepted by the tree-creation endpoint."""
    FILE = "100644"
    EXECUTABLE = "100755"
    SUBDIRECTORY = "040000"
    SUBMODULE = "160000"
    SYMLINK = "120000"


@dataclass(frozen=True)
class Operation:
    """A single queued pipeline step.

    The payload is either a literal options value or a callable that takes
    the result history and returns one.
    """
    kind: OpType
    payload: Any

    @property
    def name(self) -> str:
        """Get the operation name used in logs."""
        return self.kind.value


@dataclass(frozen=True)
class TreeEntry:
    """One entry of a tree-creation request.

    A sha of None deletes the path from the base tree.
    """
    path: str
    mode: str
    type: str
    sha: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Get the request body form of this entry (sha is always sent)."""
        return {'path': self.path, 'mode': self.mode, 'type': self.type, 'sha': self.sha}


class ResultHistory:
    """Ordered, append-only record of operation outputs.

    Entry i is the output of the i-th executed operation. Entries are never
    replaced or removed.
    """

    def __init__(self):
        self._results: List[Any] = []

    def append(self, result: Any) -> None:
        """Record the output of the operation that just executed."""
        self._results.append(result)

    def snapshot(self) -> Tuple[Any, ...]:
        """Get an immutable view of the results recorded so far."""
        return tuple(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __getitem__(self, index):
        return self._results[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._results)

    def __repr__(self) -> str:
        return f"ResultHistory({self._results!r})"
