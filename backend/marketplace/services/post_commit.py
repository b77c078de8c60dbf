"""
Post-commit side effects.

A primary state change commits first; side effects queued against it then
run in order. Each one fails on its own: the failure is logged and counted
and the remaining effects still run. Nothing here can undo the commit.
"""

import logging
from typing import Any, Callable, List, Tuple

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class PostCommitHooks:
    def __init__(self) -> None:
        self._hooks: List[Tuple[str, Callable[[], Any]]] = []

    def add(self, name: str, callback: Callable[[], Any]) -> None:
        self._hooks.append((name, callback))

    def __len__(self) -> int:
        return len(self._hooks)

    def run(self) -> List[str]:
        """Run every hook; returns the names of the ones that failed."""
        failed: List[str] = []
        hooks, self._hooks = self._hooks, []
        for name, callback in hooks:
            try:
                callback()
            except Exception as exc:
                failed.append(name)
                prometheus_metrics.record_side_effect_failure(name)
                logger.warning(
                    "post_commit_side_effect_failed",
                    extra={
                        "effect": name,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
        return failed
