"""GitHub API client for the Git Data, branch, contents and pulls endpoints."""

import base64
import logging
import requests
from typing import List, Dict, Any, Optional, Union
from urllib.parse import quote

from .errors import RemoteError, NotFoundError, ConflictError

logger = logging.getLogger('gitgraft')

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30


class GitHubClient:
    """Client for one GitHub repository.

    Every read distinguishes absence (NotFoundError) from other failures
    (RemoteError) so callers can treat a missing branch, file or pull
    request as ordinary control flow.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """Initialize GitHub client.

        Args:
            owner: Repository owner (user or organization login)
            repo: Repository name
            token: Optional GitHub personal access token
            api_url: Base URL of the REST API
            session: Optional requests session (one is created if omitted)
            timeout: Per-request timeout in seconds
        """
        self.owner = owner
        self.repo = repo
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {'Accept': 'application/vnd.github+json'}

        if token:
            self.headers['Authorization'] = f'token {token}'
            logger.debug("Using GitHub token for authentication")
        else:
            logger.debug("Using unauthenticated mode")

        self._default_branch: Optional[str] = None

    @classmethod
    def from_full_name(cls, full_name: str, **kwargs) -> 'GitHubClient':
        """Create a client from an "owner/repo" string.

        Raises:
            ValueError: If full_name is not of the form owner/repo
        """
        owner, sep, repo = full_name.partition('/')
        if not sep or not owner or not repo or '/' in repo:
            raise ValueError(f"Repository must be given as owner/repo, got {full_name!r}")
        return cls(owner, repo, **kwargs)

    @property
    def full_name(self) -> str:
        """Get full repository name (owner/name)."""
        return f"{self.owner}/{self.repo}"

    @property
    def is_authenticated(self) -> bool:
        """Check if client is authenticated."""
        return bool(self.token)

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}{path}"

    def _request(
        self,
        method: str,
        path: str,
        expected: int = 200,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None
    ) -> requests.Response:
        """Send a request and map failures onto the error hierarchy.

        Args:
            method: HTTP method
            path: Path below /repos/{owner}/{repo}
            expected: Status code that means success
            json: Optional request body
            params: Optional query parameters
            accept: Optional Accept header override

        Returns:
            The successful response

        Raises:
            NotFoundError: On HTTP 404
            ConflictError: On HTTP 409 or 422
            RemoteError: On any other unexpected status
        """
        url = self._url(path)
        headers = dict(self.headers)
        if accept:
            headers['Accept'] = accept

        logger.debug(f"{method} {url}")
        response = self.session.request(
            method,
            url,
            headers=headers,
            json=json,
            params=params,
            timeout=self.timeout
        )

        if response.status_code == expected:
            return response

        message, errors = _error_details(response)
        if response.status_code == 404:
            raise NotFoundError(404, message, errors, url)
        if response.status_code in (409, 422):
            raise ConflictError(response.status_code, message, errors, url)
        raise RemoteError(response.status_code, message, errors, url)

    # Reads

    def get_repository(self) -> Dict[str, Any]:
        """Get repository metadata."""
        return self._request('GET', '').json()

    def get_default_branch(self) -> str:
        """Get the name of the repository's default branch.

        The value is fetched once per client.
        """
        if self._default_branch is None:
            self._default_branch = self.get_repository()['default_branch']
            logger.debug(f"Default branch of {self.full_name}: {self._default_branch}")
        return self._default_branch

    def get_branch(self, branch: str) -> Dict[str, Any]:
        """Get a branch, including its tip commit and tree sha.

        Args:
            branch: Bare branch name
        """
        return self._request('GET', f"/branches/{quote(branch, safe='')}").json()

    def get_contents(self, path: str, ref: Optional[str] = None) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Get the contents entry at a path (a list for directories)."""
        params = {'ref': ref} if ref else None
        return self._request('GET', f"/contents/{quote(path)}", params=params).json()

    def get_raw_blob(self, path: str, ref: Optional[str] = None) -> bytes:
        """Get the raw bytes of the file at a path."""
        params = {'ref': ref} if ref else None
        response = self._request(
            'GET',
            f"/contents/{quote(path)}",
            params=params,
            accept='application/vnd.github.raw'
        )
        return response.content

    def get_raw_text(self, path: str, ref: Optional[str] = None) -> str:
        """Get the file at a path decoded as UTF-8 text."""
        return self.get_raw_blob(path, ref).decode('utf-8')

    def get_tree(self, sha: str, recursive: bool = False) -> Dict[str, Any]:
        """Get a tree's entries (path, mode, type, sha).

        Args:
            sha: Tree sha
            recursive: Include entries of every subtree
        """
        params = {'recursive': '1'} if recursive else None
        return self._request('GET', f"/git/trees/{quote(sha)}", params=params).json()

    def list_pulls(
        self,
        head: Optional[str] = None,
        base: Optional[str] = None,
        state: str = 'open'
    ) -> List[Dict[str, Any]]:
        """List pull requests, optionally filtered by head and base.

        Args:
            head: Branch name; qualified with the owner if not already
            base: Base branch name
            state: open, closed or all
        """
        params: Dict[str, Any] = {'state': state}
        if head:
            params['head'] = head if ':' in head else f"{self.owner}:{head}"
        if base:
            params['base'] = base
        return self._request('GET', '/pulls', params=params).json()

    # Writes

    def create_blob(self, content: Union[str, bytes], encoding: Optional[str] = None) -> Dict[str, Any]:
        """Upload a blob.

        Bytes are sent base64 encoded, text as utf-8 unless an encoding is given.
        """
        if isinstance(content, bytes):
            content = base64.b64encode(content).decode('ascii')
            encoding = 'base64'
        body = {'content': content, 'encoding': encoding or 'utf-8'}
        return self._request('POST', '/git/blobs', expected=201, json=body).json()

    def create_tree(self, tree: List[Dict[str, Any]], base_tree: Optional[str] = None) -> Dict[str, Any]:
        """Create a tree from entries layered over an optional base tree."""
        body: Dict[str, Any] = {'tree': tree}
        if base_tree:
            body['base_tree'] = base_tree
        return self._request('POST', '/git/trees', expected=201, json=body).json()

    def create_commit(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Create a commit (message, tree, parents, author, committer, signature)."""
        return self._request('POST', '/git/commits', expected=201, json=request).json()

    def create_ref(self, ref: str, sha: str) -> Dict[str, Any]:
        """Create a ref.

        Args:
            ref: Fully qualified ref, e.g. refs/heads/feature
            sha: Commit sha the ref points to
        """
        return self._request('POST', '/git/refs', expected=201, json={'ref': ref, 'sha': sha}).json()

    def update_ref(self, ref: str, sha: str, force: bool = False) -> Dict[str, Any]:
        """Move a ref.

        Args:
            ref: Ref without the refs/ prefix, e.g. heads/feature
            sha: Commit sha the ref should point to
            force: Allow a non fast-forward update
        """
        return self._request(
            'PATCH',
            f"/git/refs/{quote(ref)}",
            json={'sha': sha, 'force': force}
        ).json()

    def create_pull(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Open a pull request."""
        return self._request('POST', '/pulls', expected=201, json=request).json()

    def update_pull(self, number: int, request: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing pull request."""
        return self._request('PATCH', f"/pulls/{number}", json=request).json()


def _error_details(response: requests.Response):
    """Extract the message and detailed errors from an error response."""
    try:
        data = response.json()
    except ValueError:
        return (response.text or response.reason or 'Unknown error'), []
    if not isinstance(data, dict):
        return str(data), []
    return data.get('message', 'Unknown error'), data.get('errors') or []
