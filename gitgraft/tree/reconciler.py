"""Turns per-path tree intents into a flat list of tree entries."""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import jsonpatch

from .builder import TreeBuilder
from .intents import IntentKind, TreeIntent
from ..core.deferred import resolve
from ..core.errors import BuildError, NotFoundError, TreeIntentError
from ..core.github_client import GitHubClient
from ..core.types import TreeEntry, TreeMode

logger = logging.getLogger('gitgraft')

DEFAULT_TREE_WORKERS = 8


@dataclass(frozen=True)
class TreeBase:
    """What a tree is layered over.

    ref is the branch existing content is read from; modes maps the base
    tree's blob paths to their modes (only fetched when a rename needs it).
    """
    sha: Optional[str]
    ref: str
    modes: Dict[str, str] = field(default_factory=dict)


def declared_paths(intents: Dict[str, TreeIntent]) -> List[str]:
    """Get every path the intents write or remove, rename targets included."""
    paths = list(intents)
    for intent in intents.values():
        if intent.kind == IntentKind.RENAME:
            paths.append(intent.data)
    return paths


def check_paths(intents: Dict[str, TreeIntent]) -> None:
    """Reject intents that would send two entries for the same path.

    Raises:
        TreeIntentError: If a rename targets a path that is also declared
    """
    duplicates = sorted(path for path, count in Counter(declared_paths(intents)).items() if count > 1)
    if duplicates:
        raise TreeIntentError(f"Paths targeted more than once: {', '.join(duplicates)}")


class TreeReconciler:
    """Resolves a TreeBuilder against a repository and creates the tree.

    Paths are independent of one another, so their intents are resolved
    concurrently; the single tree-creation call waits for all of them.
    """

    def __init__(self, client: GitHubClient, max_workers: Optional[int] = None):
        """Initialize tree reconciler.

        Args:
            client: GitHub client for the target repository
            max_workers: Maximum concurrent per-path resolutions
        """
        self.client = client
        self.max_workers = max_workers or DEFAULT_TREE_WORKERS
        self._handlers = {
            IntentKind.FILE: self._blob_entries,
            IntentKind.TEXT: self._blob_entries,
            IntentKind.JSON_PATCH: self._blob_entries,
            IntentKind.EXECUTABLE: self._blob_entries,
            IntentKind.SYMLINK: self._blob_entries,
            IntentKind.SUBDIRECTORY: self._sha_entries,
            IntentKind.SUBMODULE: self._sha_entries,
            IntentKind.RENAME: self._rename_entries,
            IntentKind.DELETE: self._delete_entries,
        }

    def create(self, builder: TreeBuilder) -> Dict:
        """Create a tree from a builder.

        Args:
            builder: Base and intents of the new tree

        Returns:
            Tree-creation response

        Raises:
            TreeIntentError: If two intents target one path (before any upload)
        """
        intents = builder.intents
        check_paths(intents)

        base = self.resolve_base(builder)
        if any(intent.kind == IntentKind.RENAME for intent in intents.values()):
            base = TreeBase(base.sha, base.ref, self.base_modes(base.sha))

        entries = self.reconcile(intents, base)
        logger.info(
            f"Creating tree with {len(entries)} entries over "
            f"{base.sha or 'an empty base'} ({base.ref})"
        )
        return self.client.create_tree([entry.to_dict() for entry in entries], base.sha)

    def resolve_base(self, builder: TreeBuilder) -> TreeBase:
        """Find the base tree sha and the ref existing content is read from."""
        if builder.base_tree_sha is not None:
            sha = resolve(builder.base_tree_sha)
            if not sha:
                raise BuildError("base tree sha is undefined")
            return TreeBase(sha, self.client.get_default_branch())

        for candidate in builder.base_refs:
            ref = resolve(candidate)
            if not ref:
                continue
            try:
                branch = self.client.get_branch(ref)
            except NotFoundError:
                logger.info(f"Base ref {ref} not found, trying next candidate")
                continue
            return TreeBase(branch['commit']['commit']['tree']['sha'], ref)

        ref = self.client.get_default_branch()
        branch = self.client.get_branch(ref)
        return TreeBase(branch['commit']['commit']['tree']['sha'], ref)

    def base_modes(self, sha: Optional[str]) -> Dict[str, str]:
        """Get the mode of every blob in the base tree."""
        if not sha:
            return {}
        tree = self.client.get_tree(sha, recursive=True)
        if tree.get('truncated'):
            logger.warning(f"Tree {sha} listing is truncated; unlisted renamed files keep mode {TreeMode.FILE}")
        return {entry['path']: entry['mode'] for entry in tree.get('tree', []) if entry.get('type') == 'blob'}

    def reconcile(self, intents: Dict[str, TreeIntent], base: TreeBase) -> List[TreeEntry]:
        """Resolve every intent into tree entries.

        Args:
            intents: Path to intent mapping
            base: Base the entries are layered over

        Returns:
            Entries for all paths, grouped by path in declaration order
        """
        if not intents:
            return []

        by_path: Dict[str, List[TreeEntry]] = {}
        workers = min(self.max_workers, len(intents))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_path = {
                executor.submit(self.entries_for, path, intent, base): path
                for path, intent in intents.items()
            }

            for future in as_completed(future_to_path):
                by_path[future_to_path[future]] = future.result()

        return [entry for path in intents for entry in by_path[path]]

    def entries_for(self, path: str, intent: TreeIntent, base: TreeBase) -> List[TreeEntry]:
        """Resolve a single path's intent.

        Returns:
            One entry, or two for a rename
        """
        handler = self._handlers.get(intent.kind)
        if handler is None:
            raise ValueError(f"Unknown tree intent: {intent.kind}")
        entries = handler(path, intent, base)
        logger.debug(f"{intent.kind.value} {path}: {len(entries)} entries")
        return entries

    def _blob_entries(self, path: str, intent: TreeIntent, base: TreeBase) -> List[TreeEntry]:
        if intent.kind in (IntentKind.TEXT, IntentKind.JSON_PATCH):
            existing = self._existing_text(path, base.ref) if intent.is_edit else ""
        else:
            existing = self._existing_blob(path, base.ref) if intent.is_edit else b""

        if intent.kind == IntentKind.JSON_PATCH:
            document = intent.deserialize(existing)
            patches = resolve(intent.data, existing)
            content = intent.serialize(jsonpatch.apply_patch(document, patches))
        else:
            content = resolve(intent.data, existing)

        if content is None:
            raise BuildError(f"content for {path} is undefined")

        blob = self.client.create_blob(content)
        return [TreeEntry(path=path, mode=intent.mode, type='blob', sha=blob['sha'])]

    def _sha_entries(self, path: str, intent: TreeIntent, base: TreeBase) -> List[TreeEntry]:
        sha = resolve(intent.data)
        if not sha:
            raise BuildError(f"{intent.kind.value} sha for {path} is undefined")
        if intent.kind == IntentKind.SUBDIRECTORY:
            return [TreeEntry(path=path, mode=TreeMode.SUBDIRECTORY, type='tree', sha=sha)]
        return [TreeEntry(path=path, mode=TreeMode.SUBMODULE, type='commit', sha=sha)]

    def _rename_entries(self, path: str, intent: TreeIntent, base: TreeBase) -> List[TreeEntry]:
        new_path = intent.data
        try:
            contents = self.client.get_contents(path, base.ref)
        except NotFoundError:
            raise TreeIntentError(f"Cannot rename {path}: file does not exist on {base.ref}")

        if isinstance(contents, list):
            raise TreeIntentError(f"Cannot rename {path}: it is a directory")
        if contents.get('type') in ('symlink', 'submodule'):
            raise TreeIntentError(f"Cannot rename {path}: it is a {contents['type']}")

        mode = base.modes.get(path, TreeMode.FILE)
        return [
            TreeEntry(path=new_path, mode=mode, type='blob', sha=contents['sha']),
            TreeEntry(path=path, mode=mode, type='blob', sha=None),
        ]

    def _delete_entries(self, path: str, intent: TreeIntent, base: TreeBase) -> List[TreeEntry]:
        return [TreeEntry(path=path, mode=TreeMode.FILE, type='blob', sha=None)]

    def _existing_blob(self, path: str, ref: str) -> bytes:
        try:
            return self.client.get_raw_blob(path, ref)
        except NotFoundError:
            return b""

    def _existing_text(self, path: str, ref: str) -> str:
        try:
            return self.client.get_raw_text(path, ref)
        except NotFoundError:
            return ""
