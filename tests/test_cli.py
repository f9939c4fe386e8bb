"""Tests for the gitgraft command line."""

import os
from unittest.mock import patch

import pytest

from gitgraft.__main__ import build_tree, create_parser, main, parse_mapping
from gitgraft.tree import IntentKind


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "hello.txt").write_text("Hi\n")
    script = tmp_path / "run.sh"
    script.write_text("#!/bin/sh\necho hi\n")
    os.chmod(script, 0o755)
    return tmp_path


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv('GITHUB_TOKEN', "token")
    monkeypatch.setenv('GITHUB_REPOSITORY', "octo/demo")
    monkeypatch.delenv('GITHUB_API_URL', raising=False)
    monkeypatch.delenv('GITGRAFT_WORKERS', raising=False)


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('gitgraft.__main__.setup_logging') as mock_setup:
        yield mock_setup


class TestParseMapping:

    def test_pair(self):
        assert parse_mapping("dest=src") == ("dest", "src")

    def test_single(self):
        assert parse_mapping("dest") == ("dest", None)

    def test_splits_once(self):
        assert parse_mapping("a=b=c") == ("a", "b=c")


class TestBuildTree:

    def test_writes_deletes_and_renames(self, workdir):
        tree = build_tree(["hello.txt", "docs/hi.txt=hello.txt"], ["old.cfg"], ["a.txt=b.txt"], "feat")
        intents = tree.intents
        assert intents["hello.txt"].kind == IntentKind.FILE
        assert intents["hello.txt"].data == b"Hi\n"
        assert intents["docs/hi.txt"].data == b"Hi\n"
        assert intents["old.cfg"].kind == IntentKind.DELETE
        assert intents["a.txt"].kind == IntentKind.RENAME
        assert intents["a.txt"].data == "b.txt"
        assert tree.base_refs == ("feat",)

    def test_executable_files_keep_mode(self, workdir):
        tree = build_tree(["run.sh"], [], [], "feat")
        assert tree.intents["run.sh"].kind == IntentKind.EXECUTABLE

    def test_missing_local_file(self, workdir):
        with pytest.raises(ValueError, match="not found"):
            build_tree(["missing.txt"], [], [], "feat")

    def test_malformed_rename(self, workdir):
        with pytest.raises(ValueError, match="OLD=NEW"):
            build_tree([], [], ["a.txt"], "feat")

    def test_nothing_to_apply(self, workdir):
        with pytest.raises(ValueError, match="Nothing to apply"):
            build_tree([], [], [], "feat")


class TestMain:

    def test_no_operation_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_apply_requires_branch_and_message(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["apply"])

    def test_dry_run_prints_pipeline(self, workdir, capsys):
        code = main(["apply", "--branch", "feat", "-m", "Add hello", "--write", "hello.txt",
                     "--pr-title", "Hello", "--dry-run"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Pipeline: apply:feat" in out
        assert "[0] createTree: file hello.txt" in out
        assert "[3] maybeCreatePR" in out

    def test_missing_configuration(self, workdir, monkeypatch):
        monkeypatch.delenv('GITHUB_TOKEN', raising=False)
        monkeypatch.delenv('GITHUB_REPOSITORY', raising=False)
        assert main(["apply", "--branch", "feat", "-m", "m", "--write", "hello.txt"]) == 1

    def test_apply_commits_and_opens_pull_request(self, workdir, env, client, capsys):
        with patch('gitgraft.__main__.GitHubClient', return_value=client) as mock_client:
            code = main(["apply", "--branch", "feat", "-m", "Add hello", "--write", "hello.txt",
                         "--pr-title", "Hello", "--draft"])

        assert code == 0
        mock_client.assert_called_once_with(
            owner="octo", repo="demo", token="token", api_url="https://api.github.com"
        )
        commit_sha = client.branches['feat']
        assert client.commits[commit_sha]['message'] == "Add hello"
        assert client.pulls[0]['draft'] is True
        out = capsys.readouterr().out
        assert f"Committed {commit_sha} to feat" in out
        assert "Opened pull request #1" in out

    def test_apply_reports_existing_pull_request(self, workdir, env, client, capsys):
        args = ["apply", "--branch", "feat", "-m", "Add hello", "--write", "hello.txt", "--pr-title", "Hello"]
        with patch('gitgraft.__main__.GitHubClient', return_value=client):
            assert main(args) == 0
            assert main(args) == 0
        assert "already open" in capsys.readouterr().out
        assert len(client.pulls) == 1

    def test_pipeline_failure_exit_code(self, workdir, env, client):
        with patch('gitgraft.__main__.GitHubClient', return_value=client):
            code = main(["apply", "--branch", "feat", "-m", "m", "--rename", "missing.txt=new.txt"])
        assert code == 1
        assert 'feat' not in client.branches
