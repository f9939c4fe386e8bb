"""Pipelines package for composing ordered GitHub operations."""

from .base import Pipeline, StepRef, run_pipeline

from .executor import PipelineExecutor

__all__ = [
    'Pipeline',
    'StepRef',
    'run_pipeline',
    'PipelineExecutor',
]
