"""Main entry point for gitgraft CLI."""

from dotenv import load_dotenv
load_dotenv()

import os
import sys
import argparse
import logging
from typing import List, Optional, Tuple

from .config import Config
from .core.errors import GitGraftError
from .core.github_client import GitHubClient
from .core.logger import setup_logging
from .core.options import BranchOptions, CommitOptions, PullRequestOptions
from .pipelines import Pipeline
from .tree import TreeBuilder


def parse_mapping(value: str, separator: str = '=') -> Tuple[str, Optional[str]]:
    """Split a DEST=SRC style argument.

    Args:
        value: Argument value
        separator: Separator between the two halves

    Returns:
        (left, right) where right is None if there was no separator
    """
    if separator not in value:
        return value, None
    left, right = value.split(separator, 1)
    return left, right


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='gitgraft',
        description='Commit file changes to a GitHub branch and open a pull request, without a clone',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Commit a local file to branch docs-update (created from the default branch)
  gitgraft apply --repo me/project --branch docs-update -m "Update docs" --write README.md

  # Upload a local file under a different path, delete another, open a PR
  gitgraft apply --branch ci -m "Add CI" --write .github/workflows/ci.yml=ci.yml \\
      --delete .travis.yml --pr-title "Move CI to Actions"

  # Preview the pipeline without touching the repository
  gitgraft apply --branch ci -m "Add CI" --rename old.txt=new.txt --dry-run
        """
    )

    subparsers = parser.add_subparsers(
        dest='operation',
        help='Operation to perform',
        required=False
    )

    apply_parser = subparsers.add_parser(
        'apply',
        help='Commit file changes to a branch (creating or rebasing it) and optionally open a PR'
    )
    _add_common_args(apply_parser)
    _add_apply_args(apply_parser)

    return parser


def _add_common_args(parser: argparse.ArgumentParser):
    """Add common arguments to an operation parser.

    Args:
        parser: Parser to add arguments to
    """
    auth_group = parser.add_argument_group('repository')
    auth_group.add_argument(
        '--repo',
        metavar='OWNER/NAME',
        help='Target repository (overrides GITHUB_REPOSITORY)'
    )
    auth_group.add_argument(
        '--token',
        help='GitHub token (overrides GITHUB_TOKEN)'
    )
    auth_group.add_argument(
        '--api-url',
        help='GitHub API base URL (overrides GITHUB_API_URL)'
    )

    exec_group = parser.add_argument_group('execution')
    exec_group.add_argument(
        '--workers',
        type=int,
        help='Maximum concurrent per-file resolutions (default: 8)'
    )
    exec_group.add_argument(
        '--dry-run',
        action='store_true',
        help='Print the pipeline without executing it'
    )
    exec_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )


def _add_apply_args(parser: argparse.ArgumentParser):
    """Add arguments of the apply operation."""
    change_group = parser.add_argument_group('changes')
    change_group.add_argument(
        '--write',
        action='append',
        dest='writes',
        default=[],
        metavar='DEST[=SRC]',
        help='Upload local file SRC (default: DEST) to DEST (can be repeated)'
    )
    change_group.add_argument(
        '--delete',
        action='append',
        dest='deletes',
        default=[],
        metavar='PATH',
        help='Delete PATH (can be repeated)'
    )
    change_group.add_argument(
        '--rename',
        action='append',
        dest='renames',
        default=[],
        metavar='OLD=NEW',
        help='Move file OLD to NEW (can be repeated)'
    )

    commit_group = parser.add_argument_group('commit and branch')
    commit_group.add_argument(
        '--branch',
        required=True,
        help='Branch to create, or to move onto the new commit'
    )
    commit_group.add_argument(
        '--message', '-m',
        required=True,
        help='Commit message'
    )
    commit_group.add_argument(
        '--force',
        action='store_true',
        help='Allow non-fast-forward branch updates'
    )

    pr_group = parser.add_argument_group('pull request')
    pr_group.add_argument(
        '--pr-title',
        help='Open a pull request with this title (skipped if one is already open)'
    )
    pr_group.add_argument(
        '--pr-body',
        help='Pull request body'
    )
    pr_group.add_argument(
        '--base',
        help='Pull request base branch (default: repository default branch)'
    )
    pr_group.add_argument(
        '--draft',
        action='store_true',
        help='Open the pull request as a draft'
    )


def build_tree(writes: List[str], deletes: List[str], renames: List[str], branch: str) -> TreeBuilder:
    """Build the tree of an apply run from its change arguments.

    Local files are read now; executable local files keep their mode.

    Raises:
        ValueError: If an argument is malformed or a local file is missing
    """
    tree = TreeBuilder().base_ref(branch)

    for value in writes:
        dest, src = parse_mapping(value)
        src = src or dest
        if not os.path.isfile(src):
            raise ValueError(f"Local file not found: {src}")
        with open(src, 'rb') as f:
            content = f.read()
        if os.access(src, os.X_OK):
            tree.executable(dest, content)
        else:
            tree.file(dest, content)

    for path in deletes:
        tree.delete(path)

    for value in renames:
        old_path, new_path = parse_mapping(value)
        if not new_path:
            raise ValueError(f"Rename must be OLD=NEW, got {value!r}")
        tree.rename(old_path, new_path)

    if not len(tree):
        raise ValueError("Nothing to apply. Use --write, --delete or --rename")

    return tree


def build_apply_pipeline(args) -> Pipeline:
    """Build the pipeline of an apply run.

    The tree is layered over the branch when it exists (the default branch
    otherwise), and the commit's parent is chosen the same way, so an
    existing branch is moved forward on top of its current tip.

    Args:
        args: Parsed command line arguments

    Returns:
        Pipeline of tree, commit, branch and optional pull request steps
    """
    tree = build_tree(args.writes, args.deletes, args.renames, args.branch)

    pipeline = Pipeline(
        name=f"apply:{args.branch}",
        description=args.message
    ).create_tree(tree)

    pipeline = pipeline.create_commit(CommitOptions(
        message=args.message,
        tree=pipeline.step(0).sha,
        parent_ref=args.branch,
        use_default_branch=True
    ))

    pipeline = pipeline.create_or_update_branch(BranchOptions(
        ref=args.branch,
        sha=pipeline.step(1).sha,
        force=args.force
    ))

    if args.pr_title:
        pipeline = pipeline.maybe_create_pr(PullRequestOptions(
            head=args.branch,
            base=args.base,
            title=args.pr_title,
            body=args.pr_body,
            draft=args.draft or None
        ))

    return pipeline


def _execute_apply(args, config: Optional[Config], logger: logging.Logger) -> int:
    """Execute the apply operation.

    Args:
        args: Parsed command line arguments
        config: Configuration object (None for a dry run)
        logger: Logger instance

    Returns:
        Exit code
    """
    pipeline = build_apply_pipeline(args)

    if args.dry_run:
        print(pipeline.describe())
        return 0

    client = GitHubClient(
        owner=config.owner,
        repo=config.repo,
        token=config.github_token,
        api_url=config.api_url
    )

    results = pipeline.run(client, max_workers=config.max_workers)

    commit = results[1]
    print(f"Committed {commit['sha']} to {args.branch}")
    if len(results) > 3:
        pull = results[3]
        if pull is None:
            print(f"A pull request for {args.branch} is already open")
        else:
            print(f"Opened pull request #{pull['number']}: {pull.get('html_url', '')}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.operation:
        parser.print_help()
        return 1

    logger = setup_logging(
        operation=args.operation,
        level=logging.DEBUG if args.verbose else logging.INFO
    )

    try:
        if args.dry_run:
            return _execute_apply(args, None, logger)

        config = Config.from_env_and_args(
            token=args.token,
            repository=args.repo,
            api_url=args.api_url,
            max_workers=args.workers
        )

        logger.info("Configuration loaded")
        logger.info(f"  Repository: {config.repository}")
        logger.info(f"  API: {config.api_url}")

        return _execute_apply(args, config, logger)

    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except GitGraftError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("\nOperation cancelled by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
