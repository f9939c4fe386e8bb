"""Tests for gitgraft.reconcile: commits, branches and pull requests."""

from unittest.mock import MagicMock

import pytest

from gitgraft.core.errors import BuildError, ConflictError, NotFoundError, RemoteError
from gitgraft.core.options import (
    BranchOptions,
    CommitOptions,
    PullRequestOptions,
    UpdatePullRequestOptions,
)
from gitgraft.core.types import BranchState
from gitgraft.reconcile import (
    BranchReconciler,
    PullRequestReconciler,
    create_commit,
    resolve_parents,
)


class TestResolveParents:
    """Test how a commit's parents are chosen."""

    def test_explicit_parents_win(self, client):
        options = CommitOptions(message="m", tree="t", parents=["p1", "p2"], parent_ref="main")
        assert resolve_parents(client, options) == ["p1", "p2"]
        assert client.calls == []

    def test_parent_ref_tip(self, client):
        tip = client.add_branch('feat')
        assert resolve_parents(client, CommitOptions(message="m", tree="t", parent_ref="feat")) == [tip]

    def test_qualified_parent_ref(self, client):
        tip = client.add_branch('feat')
        options = CommitOptions(message="m", tree="t", parent_ref="refs/heads/feat")
        assert resolve_parents(client, options) == [tip]

    def test_missing_parent_ref_falls_back_to_default(self, client):
        options = CommitOptions(message="m", tree="t", parent_ref="feat", use_default_branch=True)
        assert resolve_parents(client, options) == [client.branches['main']]

    def test_missing_parent_ref_without_fallback(self, client):
        with pytest.raises(NotFoundError):
            resolve_parents(client, CommitOptions(message="m", tree="t", parent_ref="feat"))

    def test_default_branch_only(self, client):
        options = CommitOptions(message="m", tree="t", use_default_branch=True)
        assert resolve_parents(client, options) == [client.branches['main']]

    def test_no_parent_is_a_build_error_before_any_call(self, client):
        with pytest.raises(BuildError, match="parent ref is undefined"):
            resolve_parents(client, CommitOptions(message="m", tree="t"))
        assert client.calls == []


class TestCreateCommit:

    def test_request_body(self, client):
        author = {"name": "Bot", "email": "bot@example.com"}
        result = create_commit(client, CommitOptions(
            message="Add hello", tree="tree1", parent_ref="main", author=author
        ))
        [(_, request)] = client.calls_to('create_commit')
        assert request == {
            "message": "Add hello",
            "tree": "tree1",
            "parents": [client.branches['main']],
            "author": author,
        }
        assert result['sha'] in client.commits

    def test_missing_tree(self, client):
        with pytest.raises(BuildError, match="tree"):
            create_commit(client, CommitOptions(message="m", tree=None, parent_ref="main"))


class TestBranchReconciler:
    """Test branch create, update and create-or-update."""

    def test_state(self, client):
        branches = BranchReconciler(client)
        assert branches.state("main") == BranchState.EXISTS
        assert branches.state("refs/heads/nope") == BranchState.NOT_EXISTS

    def test_state_propagates_other_failures(self):
        remote = MagicMock()
        remote.get_branch.side_effect = RemoteError(500, "Server Error")
        with pytest.raises(RemoteError):
            BranchReconciler(remote).state("feat")

    def test_tip(self, client):
        tip = client.add_branch('feat')
        branches = BranchReconciler(client)
        assert branches.tip("feat") == tip
        assert branches.tip("nope") is None

    def test_rebase_applies_only_to_existing_branch(self, client):
        seen = []

        def rebase(options, tip):
            seen.append(tip)
            return BranchOptions(ref=options.ref, sha="rebased")

        branches = BranchReconciler(client)
        branches.create_or_update(BranchOptions(ref="feat", sha="c1"), rebase)
        assert seen == []
        assert client.branches['feat'] == "c1"

        tip = client.add_branch('other')
        branches.create_or_update(BranchOptions(ref="other", sha="c2"), rebase)
        assert seen == [tip]
        assert client.calls_to('update_ref') == [('update_ref', "heads/other", "rebased", False)]

    def test_create_uses_qualified_ref(self, client):
        BranchReconciler(client).create(BranchOptions(ref="feat", sha="c1"))
        assert client.calls_to('create_ref') == [('create_ref', "refs/heads/feat", "c1")]
        assert client.branches['feat'] == "c1"

    def test_update_uses_short_ref(self, client):
        BranchReconciler(client).update(BranchOptions(ref="refs/heads/main", sha="c2", force=True))
        assert client.calls_to('update_ref') == [('update_ref', "heads/main", "c2", True)]

    def test_create_or_update_creates_absent_branch(self, client):
        result = BranchReconciler(client).create_or_update(BranchOptions(ref="feat", sha="c1"))
        assert result['ref'] == "refs/heads/feat"
        assert 'update_ref' not in client.call_names()

    def test_create_or_update_updates_existing_branch(self, client):
        client.add_branch('feat')
        BranchReconciler(client).create_or_update(BranchOptions(ref="feat", sha="c2"))
        assert client.calls_to('update_ref') == [('update_ref', "heads/feat", "c2", False)]
        assert 'create_ref' not in client.call_names()

    def test_missing_sha(self, client):
        with pytest.raises(BuildError, match="sha"):
            BranchReconciler(client).create(BranchOptions(ref="feat", sha=None))

    def test_missing_ref(self, client):
        with pytest.raises(BuildError, match="ref is undefined"):
            BranchReconciler(client).create_or_update(BranchOptions(ref="", sha="c1"))
        assert client.calls == []


class TestPullRequestReconciler:
    """Test pull request create, update and conflict handling."""

    def test_create_defaults_base_to_default_branch(self, client):
        pull = PullRequestReconciler(client).create(PullRequestOptions(head="feat", title="T"))
        assert pull['base'] == {'ref': "main"}
        [(_, request)] = client.calls_to('create_pull')
        assert request == {"head": "feat", "base": "main", "title": "T"}

    def test_create_passes_optional_fields(self, client):
        PullRequestReconciler(client).create(PullRequestOptions(
            head="refs/heads/feat", base="develop", title="T", body="B",
            draft=True, maintainer_can_modify=False,
        ))
        [(_, request)] = client.calls_to('create_pull')
        assert request == {
            "head": "feat", "base": "develop", "title": "T", "body": "B",
            "draft": True, "maintainer_can_modify": False,
        }

    def test_create_requires_head(self, client):
        with pytest.raises(BuildError):
            PullRequestReconciler(client).create(PullRequestOptions(head=None, title="T"))

    def test_maybe_create_swallows_existing_pull_request(self, client):
        pulls = PullRequestReconciler(client)
        first = pulls.maybe_create(PullRequestOptions(head="feat", title="T"))
        second = pulls.maybe_create(PullRequestOptions(head="feat", title="T"))
        assert first['number'] == 1
        assert second is None
        assert len(client.pulls) == 1

    def test_maybe_create_reraises_other_conflicts(self):
        remote = MagicMock()
        remote.get_default_branch.return_value = "main"
        remote.create_pull.side_effect = ConflictError(
            422, "Validation Failed", [{"message": "No commits between main and feat"}]
        )
        with pytest.raises(ConflictError):
            PullRequestReconciler(remote).maybe_create(PullRequestOptions(head="feat", title="T"))

    def test_update(self, client):
        pulls = PullRequestReconciler(client)
        pulls.create(PullRequestOptions(head="feat", title="T"))
        updated = pulls.update(UpdatePullRequestOptions(number=1, title="New", state="closed"))
        assert updated['title'] == "New"
        assert updated['state'] == "closed"
        assert client.calls_to('update_pull') == [('update_pull', 1, {"title": "New", "state": "closed"})]

    def test_update_requires_number(self, client):
        with pytest.raises(BuildError):
            PullRequestReconciler(client).update(UpdatePullRequestOptions(number=None))

    def test_create_or_update_with_number_updates(self, client):
        pulls = PullRequestReconciler(client)
        pulls.create(PullRequestOptions(head="feat", title="T"))
        result = pulls.create_or_update(PullRequestOptions(head="feat", title="Renamed", number=1))
        assert result['title'] == "Renamed"
        assert len(client.calls_to('create_pull')) == 1

    def test_create_or_update_without_number_creates(self, client):
        result = PullRequestReconciler(client).create_or_update(PullRequestOptions(head="feat", title="T"))
        assert result['number'] == 1

    def test_create_or_update_existing_returns_none(self, client):
        pulls = PullRequestReconciler(client)
        pulls.create(PullRequestOptions(head="feat", title="T"))
        assert pulls.create_or_update(PullRequestOptions(head="feat", title="T")) is None

    def test_find(self, client):
        pulls = PullRequestReconciler(client)
        assert pulls.find(PullRequestOptions(head="feat")) is None
        pulls.create(PullRequestOptions(head="feat", title="T"))
        assert pulls.find(PullRequestOptions(head="feat"))['number'] == 1
        assert pulls.find(PullRequestOptions(head="feat", base="develop")) is None

    def test_create_ensures_branch_first(self, client):
        pulls = PullRequestReconciler(client)
        pull = pulls.create(PullRequestOptions(title="T", branch=BranchOptions(ref="feat", sha="c1")))

        assert client.branches['feat'] == "c1"
        assert pull['head'] == {'ref': "feat"}
        assert client.call_names().index('create_ref') < client.call_names().index('create_pull')

    def test_branch_given_as_dict(self, client):
        client.add_branch('feat')
        PullRequestReconciler(client).maybe_create(
            PullRequestOptions(title="T", branch={"ref": "feat", "sha": "c2"})
        )
        assert client.calls_to('update_ref') == [('update_ref', "heads/feat", "c2", False)]

    def test_create_or_update_updates_branch_once(self, client):
        pulls = PullRequestReconciler(client)
        pulls.create_or_update(PullRequestOptions(title="T", branch=BranchOptions(ref="feat", sha="c1")))
        assert client.call_names().count('get_branch') == 1
        assert len(client.calls_to('create_ref')) == 1

    def test_branch_rebase_hook_is_passed_through(self, client):
        tip = client.add_branch('feat')
        seen = []

        def rebase(options, current):
            seen.append(current)
            return options

        PullRequestReconciler(client).maybe_create(
            PullRequestOptions(title="T", branch=BranchOptions(ref="feat", sha="c2")), rebase
        )
        assert seen == [tip]

    def test_shared_branch_reconciler(self, client):
        branches = BranchReconciler(client)
        assert PullRequestReconciler(client, branches).branches is branches
