"""Exception hierarchy for gitgraft."""

from typing import Any, Dict, List, Optional


class GitGraftError(Exception):
    """Base class for all gitgraft errors."""


class BuildError(GitGraftError):
    """An operation input could not be resolved to a usable value.

    Raised before any network call is made for the failing operation.
    """


class TreeIntentError(GitGraftError):
    """A tree intent cannot be applied to the content found at its path."""


class RemoteError(GitGraftError):
    """The GitHub API rejected a request."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        url: Optional[str] = None
    ):
        """Initialize a remote error.

        Args:
            status_code: HTTP status code of the response
            message: Message returned by the API (or a description)
            errors: Detailed validation errors, if the API sent any
            url: Request URL
        """
        self.status_code = status_code
        self.message = message
        self.errors = errors or []
        self.url = url
        super().__init__(f"{status_code}: {message}" + (f" ({url})" if url else ""))

    def error_messages(self) -> List[str]:
        """Get the top-level message followed by every detailed error message."""
        messages = [self.message]
        for error in self.errors:
            if isinstance(error, dict) and error.get('message'):
                messages.append(error['message'])
        return messages


class NotFoundError(RemoteError):
    """The requested resource does not exist (HTTP 404)."""


class ConflictError(RemoteError):
    """The request conflicts with the current state (HTTP 409 or 422)."""

    def is_existing_pull_request(self) -> bool:
        """Check whether the conflict reports an already-open pull request."""
        return any(
            'pull request already exists' in message.lower()
            for message in self.error_messages()
        )
