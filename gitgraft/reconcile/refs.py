"""Ref name normalisation.

The refs endpoints disagree on naming: creating a ref takes the fully
qualified refs/heads/<name>, updating one takes heads/<name>, and the
branches endpoint takes the bare <name>.
"""

from ..core.errors import BuildError

QUALIFIED_PREFIX = "refs/"
HEADS_PREFIX = "heads/"
SHORT_PREFIXES = ("heads/", "tags/")


def _check(ref: str) -> str:
    if not ref or not isinstance(ref, str):
        raise BuildError(f"ref is undefined (got {ref!r})")
    return ref


def branch_name(ref: str) -> str:
    """Get the bare branch name: refs/heads/x, heads/x and x all give x."""
    ref = _check(ref)
    if ref.startswith(QUALIFIED_PREFIX):
        ref = ref[len(QUALIFIED_PREFIX):]
    if ref.startswith(HEADS_PREFIX):
        ref = ref[len(HEADS_PREFIX):]
    return ref


def create_ref_name(ref: str) -> str:
    """Get the refs/heads/<name> form used when creating a ref."""
    ref = _check(ref)
    if ref.startswith(QUALIFIED_PREFIX):
        return ref
    if ref.startswith(SHORT_PREFIXES):
        return QUALIFIED_PREFIX + ref
    return f"{QUALIFIED_PREFIX}{HEADS_PREFIX}{ref}"


def update_ref_name(ref: str) -> str:
    """Get the heads/<name> form used when updating a ref."""
    ref = _check(ref)
    if ref.startswith(QUALIFIED_PREFIX):
        return ref[len(QUALIFIED_PREFIX):]
    if ref.startswith(SHORT_PREFIXES):
        return ref
    return HEADS_PREFIX + ref
