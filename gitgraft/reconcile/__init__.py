"""Reconcilers that decide how desired commit, branch and PR state is reached."""

from .refs import branch_name, create_ref_name, update_ref_name
from .commits import create_commit, resolve_parents
from .branches import BranchReconciler
from .pulls import PullRequestReconciler

__all__ = [
    'branch_name',
    'create_ref_name',
    'update_ref_name',
    'create_commit',
    'resolve_parents',
    'BranchReconciler',
    'PullRequestReconciler',
]
