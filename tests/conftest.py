"""Shared fixtures: an in-memory stand-in for GitHubClient."""

import itertools
import threading
from typing import Any, Dict, List, Optional

import pytest

from gitgraft.core.errors import ConflictError, NotFoundError


class FakeGitHubClient:
    """In-memory repository speaking the GitHubClient interface.

    Files are stored per branch name, so content read "from a ref" is the
    content seeded on that branch. Every call is recorded in calls as
    (method, *args).
    """

    def __init__(self, owner: str = "octo", repo: str = "demo", default_branch: str = "main"):
        self.owner = owner
        self.repo = repo
        self.default_branch = default_branch
        self.branches: Dict[str, str] = {}
        self.commits: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[tuple, bytes] = {}
        self.modes: Dict[tuple, str] = {}
        self.special: Dict[tuple, str] = {}
        self.blobs: Dict[str, Any] = {}
        self.trees: Dict[str, Dict[str, Any]] = {}
        self.pulls: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self.add_branch(default_branch)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    # Seeding helpers

    def _sha(self, prefix: str) -> str:
        with self._lock:
            return f"{prefix}{next(self._counter):04d}"

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def calls_to(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    def add_branch(self, name: str, files: Optional[Dict[str, Any]] = None) -> str:
        commit = self._sha("commit")
        tree = self._sha("tree")
        self.commits[commit] = {'sha': commit, 'tree': {'sha': tree}, 'parents': []}
        self.branches[name] = commit
        for path, content in (files or {}).items():
            self.add_file(name, path, content)
        return commit

    def add_file(self, branch: str, path: str, content: Any, mode: str = "100644"):
        if isinstance(content, str):
            content = content.encode('utf-8')
        self.files[(branch, path)] = content
        self.modes[(branch, path)] = mode

    def add_special(self, branch: str, path: str, kind: str):
        self.special[(branch, path)] = kind

    def tree_sha(self, branch: str) -> str:
        return self.commits[self.branches[branch]]['tree']['sha']

    # Reads

    def get_default_branch(self) -> str:
        self._record('get_default_branch')
        return self.default_branch

    def get_branch(self, branch: str) -> Dict[str, Any]:
        self._record('get_branch', branch)
        if branch not in self.branches:
            raise NotFoundError(404, "Branch not found")
        sha = self.branches[branch]
        return {
            'name': branch,
            'commit': {
                'sha': sha,
                'commit': {'tree': {'sha': self.commits[sha]['tree']['sha']}},
            },
        }

    def get_contents(self, path: str, ref: Optional[str] = None):
        self._record('get_contents', path, ref)
        ref = ref or self.default_branch
        kind = self.special.get((ref, path))
        if kind == 'dir':
            return [{'type': 'file', 'path': f"{path}/child", 'sha': f"blob-{path}/child"}]
        if kind:
            return {'type': kind, 'path': path, 'sha': f"blob-{path}"}
        if (ref, path) not in self.files:
            raise NotFoundError(404, "Not Found")
        return {'type': 'file', 'path': path, 'sha': f"blob-{path}"}

    def get_raw_blob(self, path: str, ref: Optional[str] = None) -> bytes:
        self._record('get_raw_blob', path, ref)
        ref = ref or self.default_branch
        if (ref, path) not in self.files:
            raise NotFoundError(404, "Not Found")
        return self.files[(ref, path)]

    def get_raw_text(self, path: str, ref: Optional[str] = None) -> str:
        return self.get_raw_blob(path, ref).decode('utf-8')

    def get_tree(self, sha: str, recursive: bool = False) -> Dict[str, Any]:
        self._record('get_tree', sha, recursive)
        branch = next(
            (name for name, commit in self.branches.items()
             if self.commits.get(commit, {}).get('tree', {}).get('sha') == sha),
            None
        )
        entries = [
            {'path': path, 'mode': self.modes[(name, path)], 'type': 'blob', 'sha': f"blob-{path}"}
            for (name, path) in self.files
            if name == branch
        ]
        return {'sha': sha, 'tree': entries, 'truncated': False}

    def list_pulls(self, head: Optional[str] = None, base: Optional[str] = None, state: str = 'open'):
        self._record('list_pulls', head, base, state)
        return [
            pull for pull in self.pulls
            if pull['state'] == state
            and (head is None or pull['head']['ref'] == head)
            and (base is None or pull['base']['ref'] == base)
        ]

    # Writes

    def create_blob(self, content, encoding: Optional[str] = None) -> Dict[str, Any]:
        self._record('create_blob', content)
        sha = self._sha("blob")
        self.blobs[sha] = content
        return {'sha': sha, 'url': f"https://api.github.test/blobs/{sha}"}

    def create_tree(self, tree: List[Dict[str, Any]], base_tree: Optional[str] = None) -> Dict[str, Any]:
        self._record('create_tree', tree, base_tree)
        sha = self._sha("tree")
        self.trees[sha] = {'tree': tree, 'base_tree': base_tree}
        return {'sha': sha, 'tree': tree}

    def create_commit(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self._record('create_commit', request)
        sha = self._sha("commit")
        commit = {
            'sha': sha,
            'message': request['message'],
            'tree': {'sha': request['tree']},
            'parents': [{'sha': parent} for parent in request['parents']],
        }
        self.commits[sha] = commit
        return commit

    def create_ref(self, ref: str, sha: str) -> Dict[str, Any]:
        self._record('create_ref', ref, sha)
        name = ref[len('refs/heads/'):]
        if name in self.branches:
            raise ConflictError(422, "Reference already exists")
        self.branches[name] = sha
        return {'ref': ref, 'object': {'sha': sha, 'type': 'commit'}}

    def update_ref(self, ref: str, sha: str, force: bool = False) -> Dict[str, Any]:
        self._record('update_ref', ref, sha, force)
        name = ref[len('heads/'):]
        if name not in self.branches:
            raise ConflictError(422, "Reference does not exist")
        self.branches[name] = sha
        return {'ref': f"refs/{ref}", 'object': {'sha': sha, 'type': 'commit'}}

    def create_pull(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self._record('create_pull', request)
        for pull in self.pulls:
            if (pull['state'] == 'open'
                    and pull['head']['ref'] == request['head']
                    and pull['base']['ref'] == request['base']):
                raise ConflictError(422, "Validation Failed", [{
                    'resource': 'PullRequest',
                    'code': 'custom',
                    'message': f"A pull request already exists for {self.owner}:{request['head']}.",
                }])
        number = len(self.pulls) + 1
        pull = {
            'number': number,
            'state': 'open',
            'title': request.get('title'),
            'body': request.get('body'),
            'draft': request.get('draft', False),
            'head': {'ref': request['head']},
            'base': {'ref': request['base']},
            'html_url': f"https://github.test/{self.full_name}/pull/{number}",
        }
        self.pulls.append(pull)
        return pull

    def update_pull(self, number: int, request: Dict[str, Any]) -> Dict[str, Any]:
        self._record('update_pull', number, request)
        for pull in self.pulls:
            if pull['number'] == number:
                for key, value in request.items():
                    if key == 'base':
                        pull['base'] = {'ref': value}
                    else:
                        pull[key] = value
                return pull
        raise NotFoundError(404, "Not Found")


@pytest.fixture
def client():
    """Fake repository with a main branch holding a README and a package.json."""
    fake = FakeGitHubClient()
    fake.add_file('main', 'README.md', "# demo\n")
    fake.add_file('main', 'package.json', '{\n  "name": "demo",\n  "version": "1.0.0"\n}\n')
    return fake


@pytest.fixture
def empty_client():
    """Fake repository with an empty main branch."""
    return FakeGitHubClient()
