"""Fluent builder for a create-tree operation."""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .intents import IntentKind, TreeIntent, dump_json, load_json
from ..core.deferred import Deferred

Content = Union[bytes, str]


class TreeBuilder:
    """Collects per-path intents and the base the new tree is layered over.

    Each path holds at most one intent; setting a path again replaces the
    earlier intent.

    Example usage:
        tree = (
            TreeBuilder()
            .base_ref("feature", "main")
            .text("README.md", lambda existing: existing + "\\nMore docs\\n")
            .json_patch("package.json", [{"op": "replace", "path": "/version", "value": "2.0.0"}])
            .rename("old.txt", "new.txt")
            .delete("obsolete.cfg")
        )
    """

    def __init__(self):
        self._base_refs: Tuple[Deferred[Optional[str]], ...] = ()
        self._base_tree: Deferred[Optional[str]] = None
        self._intents: Dict[str, TreeIntent] = {}

    @property
    def base_refs(self) -> Tuple[Deferred[Optional[str]], ...]:
        """Candidate base refs, tried in order."""
        return self._base_refs

    @property
    def base_tree_sha(self) -> Deferred[Optional[str]]:
        """Explicit base tree sha, if one was set."""
        return self._base_tree

    @property
    def intents(self) -> Dict[str, TreeIntent]:
        """Path to intent mapping, in the order paths were first set."""
        return dict(self._intents)

    def __len__(self) -> int:
        return len(self._intents)

    def base_ref(self, ref: Deferred[Optional[str]], *fallbacks: Deferred[Optional[str]]) -> 'TreeBuilder':
        """Set the branch whose tree the new tree is based on.

        Refs that do not exist are skipped in favour of the next fallback;
        when none exist the default branch is used. Replaces any base_tree().

        Args:
            ref: Branch name, or a zero-argument callable returning one
            *fallbacks: Further candidates, tried in order

        Returns:
            Self for chaining
        """
        self._base_refs = (ref,) + fallbacks
        self._base_tree = None
        return self

    def base_tree(self, sha: Deferred[str]) -> 'TreeBuilder':
        """Set an explicit base tree sha. Replaces any base_ref()."""
        self._base_tree = sha
        self._base_refs = ()
        return self

    def clear(self) -> 'TreeBuilder':
        """Drop every path intent, keeping the base."""
        self._intents = {}
        return self

    def clone(self) -> 'TreeBuilder':
        """Get an independent copy with the same base and intents."""
        copy = TreeBuilder()
        copy._base_refs = self._base_refs
        copy._base_tree = self._base_tree
        copy._intents = dict(self._intents)
        return copy

    def _set(self, path: str, intent: TreeIntent) -> 'TreeBuilder':
        if not path or path.startswith('/'):
            raise ValueError(f"Tree paths must be repository-relative, got {path!r}")
        self._intents[path] = intent
        return self

    def file(self, path: str, content: Deferred[Content]) -> 'TreeBuilder':
        """Write a regular file.

        Args:
            path: Repository-relative path
            content: Bytes or text, or a callable taking the existing bytes

        Returns:
            Self for chaining
        """
        return self._set(path, TreeIntent(IntentKind.FILE, content))

    def text(self, path: str, content: Deferred[str]) -> 'TreeBuilder':
        """Write a text file.

        Args:
            path: Repository-relative path
            content: Text, or a callable taking the existing text

        Returns:
            Self for chaining
        """
        return self._set(path, TreeIntent(IntentKind.TEXT, content))

    def json_patch(
        self,
        path: str,
        patches: Deferred[List[Dict[str, Any]]],
        deserialize: Callable[[str], Any] = load_json,
        serialize: Callable[[Any], str] = dump_json
    ) -> 'TreeBuilder':
        """Apply RFC 6902 patch operations to a JSON file.

        Args:
            path: Repository-relative path
            patches: Patch operations, or a callable taking the existing text
            deserialize: Parses the existing text
            serialize: Renders the patched document

        Returns:
            Self for chaining
        """
        return self._set(path, TreeIntent(IntentKind.JSON_PATCH, patches, deserialize, serialize))

    def executable(self, path: str, content: Deferred[Content]) -> 'TreeBuilder':
        """Write an executable file."""
        return self._set(path, TreeIntent(IntentKind.EXECUTABLE, content))

    def symlink(self, path: str, target: Deferred[Content]) -> 'TreeBuilder':
        """Write a symlink whose blob holds the link target."""
        return self._set(path, TreeIntent(IntentKind.SYMLINK, target))

    def subdirectory(self, path: str, sha: Deferred[str]) -> 'TreeBuilder':
        """Point a path at an existing tree sha."""
        return self._set(path, TreeIntent(IntentKind.SUBDIRECTORY, sha))

    def submodule(self, path: str, sha: Deferred[str]) -> 'TreeBuilder':
        """Point a path at a submodule commit sha."""
        return self._set(path, TreeIntent(IntentKind.SUBMODULE, sha))

    def rename(self, old_path: str, new_path: str) -> 'TreeBuilder':
        """Move a single file to a new path."""
        if old_path == new_path:
            raise ValueError(f"Cannot rename {old_path!r} to itself")
        return self._set(old_path, TreeIntent(IntentKind.RENAME, new_path))

    def delete(self, path: str) -> 'TreeBuilder':
        """Remove a path from the tree."""
        return self._set(path, TreeIntent(IntentKind.DELETE))

    def describe(self) -> List[str]:
        """Get one line per intent, for previews."""
        lines = []
        for path, intent in self._intents.items():
            if intent.kind == IntentKind.RENAME:
                lines.append(f"rename {path} -> {intent.data}")
            else:
                lines.append(f"{intent.kind.value} {path}")
        return lines
