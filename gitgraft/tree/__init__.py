"""Tree package: per-path intents and their reconciliation into tree entries."""

from .intents import IntentKind, TreeIntent, dump_json, load_json
from .builder import TreeBuilder
from .reconciler import TreeReconciler

__all__ = [
    'IntentKind',
    'TreeIntent',
    'dump_json',
    'load_json',
    'TreeBuilder',
    'TreeReconciler',
]
