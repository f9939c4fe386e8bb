"""Per-path tree intents."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..core.types import TreeMode


class IntentKind(Enum):
    """What a tree operation does to a single path."""
    FILE = "file"
    TEXT = "text"
    JSON_PATCH = "json_patch"
    EXECUTABLE = "executable"
    SUBDIRECTORY = "subdirectory"
    SUBMODULE = "submodule"
    SYMLINK = "symlink"
    RENAME = "rename"
    DELETE = "delete"


# Modes of the intents that upload a blob.
BLOB_MODES = {
    IntentKind.FILE: TreeMode.FILE,
    IntentKind.TEXT: TreeMode.FILE,
    IntentKind.JSON_PATCH: TreeMode.FILE,
    IntentKind.EXECUTABLE: TreeMode.EXECUTABLE,
    IntentKind.SYMLINK: TreeMode.SYMLINK,
}


def dump_json(value: Any) -> str:
    """Serialize JSON the way patched files are written back."""
    return json.dumps(value, indent=2) + "\n"


def load_json(text: str) -> Any:
    """Deserialize JSON, treating an empty or missing file as an empty object."""
    if not text.strip():
        return {}
    return json.loads(text)


@dataclass(frozen=True)
class TreeIntent:
    """A single path's intent inside one tree operation.

    data holds the deferred content (bytes, str, patch list or sha) or, for
    RENAME, the new path. Content callables receive the existing content at
    the path; sha callables take no arguments.
    """
    kind: IntentKind
    data: Any = None
    deserialize: Callable[[str], Any] = load_json
    serialize: Callable[[Any], str] = dump_json

    @property
    def mode(self) -> Optional[str]:
        """Get the blob mode for blob-writing intents."""
        return BLOB_MODES.get(self.kind)

    @property
    def is_edit(self) -> bool:
        """Check if the intent depends on the content already at its path."""
        if self.kind == IntentKind.JSON_PATCH:
            return True
        return self.kind in BLOB_MODES and callable(self.data)
