"""
Compensation stack — saga-style rollback for multi-step operations.

Each step that changes the system registers its inverse right after it
succeeds (or right before it starts, when a half-done step needs the
same undo). If the guarded block raises, the registered inverses run in
reverse order and the original exception propagates.

    with CompensationStack("install foo") as saga:
        make_dir(basedir)
        saga.push("remove basedir", shutil.rmtree, basedir)
        ...

A failing compensation is logged and skipped; it never replaces the
error that triggered the rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class Compensation:
    """One registered undo step."""

    label: str
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)

    def run(self) -> None:
        self.fn(*self.args, **self.kwargs)


class CompensationStack:
    """Ordered list of undo steps, unwound LIFO on failure."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        self._steps: list[Compensation] = []
        self.unwound: list[str] = []
        self.failed: list[str] = []

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def labels(self) -> list[str]:
        """Labels of the registered steps, in registration order."""
        return [step.label for step in self._steps]

    def push(self, label: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Register an undo step."""
        self._steps.append(Compensation(label=label, fn=fn, args=args, kwargs=kwargs))
        logger.debug("%s: registered compensation %r", self.operation or "saga", label)

    def unwind(self) -> None:
        """Run every registered step, newest first, then forget them."""
        while self._steps:
            step = self._steps.pop()
            try:
                step.run()
                self.unwound.append(step.label)
            except Exception as e:
                self.failed.append(step.label)
                logger.warning(
                    "%s: rollback step %r failed: %s",
                    self.operation or "saga", step.label, e,
                )

    def discard(self) -> None:
        """Forget all steps (the operation succeeded)."""
        self._steps.clear()

    def __enter__(self) -> CompensationStack:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.discard()
            return False
        logger.info(
            "%s failed (%s), rolling back %d step(s)",
            self.operation or "operation", exc, len(self._steps),
        )
        self.unwind()
        return False
