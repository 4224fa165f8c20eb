# app/bookings/steps.py
"""Sequential runner for best-effort side effects.

Each step runs after the previous one has finished.  A failing step is
logged and recorded; it never stops the steps after it and never reaches the
caller.  A step can name another step's result as a requirement and is then
skipped unless that step succeeded with a value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


@dataclass
class StepResult:
    name: str
    ok: bool = False
    value: Any = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def status(self) -> str:
        if self.skipped:
            return 'skipped'
        return 'ok' if self.ok else 'failed'


class StepRunner:
    def __init__(self, label: str) -> None:
        self.label = label
        self.results: List[StepResult] = []

    def run(self, name: str, fn: Callable[..., Any], *args,
            requires: Optional[StepResult] = None) -> StepResult:
        if requires is not None and (not requires.ok or requires.value is None):
            logging.info("%s: skipping %s, %s produced nothing", self.label, name, requires.name)
            result = StepResult(name, skipped=True)
        else:
            try:
                result = StepResult(name, ok=True, value=fn(*args))
            except Exception as e:
                logging.exception("%s: %s failed: %s", self.label, name, e)
                result = StepResult(name, error=e)
        self.results.append(result)
        return result

    def summary(self) -> Dict[str, str]:
        return {r.name: r.status for r in self.results}
