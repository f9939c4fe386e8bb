"""Configuration management for gitgraft."""

import os
from typing import Optional
from dataclasses import dataclass

from .core.github_client import DEFAULT_API_URL


@dataclass
class Config:
    """Configuration for gitgraft.

    Merges environment variables with CLI arguments.
    CLI arguments take precedence over environment variables.
    """

    github_token: str
    repository: str
    api_url: str = DEFAULT_API_URL
    max_workers: Optional[int] = None

    @classmethod
    def from_env_and_args(
        cls,
        token: Optional[str] = None,
        repository: Optional[str] = None,
        api_url: Optional[str] = None,
        max_workers: Optional[int] = None
    ) -> 'Config':
        """Create config from environment variables and CLI arguments.

        CLI arguments override environment variables.

        Args:
            token: GitHub token (overrides GITHUB_TOKEN)
            repository: Target repository as owner/repo (overrides GITHUB_REPOSITORY)
            api_url: API base URL (overrides GITHUB_API_URL)
            max_workers: Maximum concurrent tree resolutions (overrides GITGRAFT_WORKERS)

        Returns:
            Config instance

        Raises:
            ValueError: If required config is missing or malformed
        """
        final_token = token or os.getenv('GITHUB_TOKEN')
        final_repository = repository or os.getenv('GITHUB_REPOSITORY')
        final_api_url = api_url or os.getenv('GITHUB_API_URL') or DEFAULT_API_URL

        final_workers = max_workers
        if final_workers is None and os.getenv('GITGRAFT_WORKERS'):
            try:
                final_workers = int(os.environ['GITGRAFT_WORKERS'])
            except ValueError:
                raise ValueError(
                    f"GITGRAFT_WORKERS must be an integer, got {os.environ['GITGRAFT_WORKERS']!r}"
                )

        # Validate required fields
        if not final_token:
            raise ValueError(
                "GitHub token is required. "
                "Set GITHUB_TOKEN in .env or use --token"
            )
        if not final_repository:
            raise ValueError(
                "Target repository is required. "
                "Set GITHUB_REPOSITORY in .env or use --repo"
            )
        if final_repository.count('/') != 1 or not all(final_repository.split('/')):
            raise ValueError(f"Repository must be owner/repo, got {final_repository!r}")
        if final_workers is not None and final_workers < 1:
            raise ValueError(f"Workers must be at least 1, got {final_workers}")

        return cls(
            github_token=final_token,
            repository=final_repository,
            api_url=final_api_url.rstrip('/'),
            max_workers=final_workers
        )

    @property
    def owner(self) -> str:
        """Repository owner."""
        return self.repository.split('/')[0]

    @property
    def repo(self) -> str:
        """Repository name."""
        return self.repository.split('/')[1]
