"""Recorded compensations for multi-step writes.

A step that completes registers how to undo itself. When a later step fails
the recorded undos run newest first. An undo that fails does not stop the
others; it is logged and counted so the caller can report an incomplete
rollback.
"""

import structlog

logger = structlog.get_logger(__name__)


class Compensations:
    def __init__(self, operation: str, **context):
        self.operation = operation
        self.context = context
        self._recorded = []

    def record(self, step: str, undo, *args, **kwargs) -> None:
        self._recorded.append((step, undo, args, kwargs))

    @property
    def steps(self) -> list[str]:
        return [step for step, *_ in self._recorded]

    def run(self) -> tuple[int, int]:
        """Run every recorded undo in reverse order. Returns ``(run, failed)``."""
        run = failed = 0
        while self._recorded:
            step, undo, args, kwargs = self._recorded.pop()
            try:
                undo(*args, **kwargs)
                run += 1
            except Exception:
                failed += 1
                logger.exception("compensation_failed", operation=self.operation, step=step, **self.context)

        logger.info("compensations_run", operation=self.operation, run=run, failed=failed, **self.context)
        return run, failed
