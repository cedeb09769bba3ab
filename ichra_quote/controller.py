"""
Recomputation Controller

Holds the latest inputs and the last completed QuoteResult, and re-runs
the pass whenever any input changes.

- One worker thread owns pass execution; callers only post inputs.
- Changes arriving within the debounce window are coalesced.
- A newer change cancels the in-flight pass; its output is discarded.
- A completed result replaces the previous one in a single assignment,
  so readers never see a partial result.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ichra_quote.config import EngineSettings
from ichra_quote.engine import recompute
from ichra_quote.exceptions import InvariantViolation, PassCancelled
from ichra_quote.quote_types import (
    BenefitClass,
    FilterSpec,
    Member,
    Plan,
    QuoteInputs,
    QuoteResult,
)

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    IDLE = "idle"
    RECOMPUTING = "recomputing"


class RecomputationController:
    """
    Debounced, latest-inputs-win wrapper around recompute().

    Usage:
        controller = RecomputationController(inputs)
        controller.update_filters(spec.replace(metal_levels=frozenset({'gold'})))
        controller.wait_until_idle(timeout=5)
        summary = controller.result.summary
    """

    def __init__(self, inputs: Optional[QuoteInputs] = None,
                 settings: Optional[EngineSettings] = None,
                 recompute_func: Callable = recompute):
        self.settings = settings or EngineSettings()
        self._recompute = recompute_func
        self._condition = threading.Condition(threading.RLock())
        self._inputs: Optional[QuoteInputs] = None
        self._generation = 0
        self._changed_at = 0.0
        self._cancel_event: Optional[threading.Event] = None
        self._state = ControllerState.IDLE
        self._result: Optional[QuoteResult] = None
        self._result_generation = 0
        self._last_error: Optional[Exception] = None
        self._subscribers: List[Callable[[QuoteResult], None]] = []
        self._shutdown = False

        self._worker = threading.Thread(target=self._run, name="quote-recompute", daemon=True)
        self._worker.start()

        if inputs is not None:
            self.on_inputs_changed(inputs)

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def state(self) -> ControllerState:
        with self._condition:
            return self._state

    @property
    def result(self) -> Optional[QuoteResult]:
        """Last completed result (None before the first pass finishes)"""
        return self._result

    @property
    def inputs(self) -> Optional[QuoteInputs]:
        with self._condition:
            return self._inputs

    @property
    def last_error(self) -> Optional[Exception]:
        """Exception from the most recent failed pass, cleared on success"""
        return self._last_error

    def subscribe(self, callback: Callable[[QuoteResult], None]):
        """Register a callback invoked (on the worker thread) with each new result"""
        with self._condition:
            self._subscribers.append(callback)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the latest posted inputs have been processed.

        Returns:
            True if idle, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while self._state is not ControllerState.IDLE or self._result_generation < self._generation:
                if self._shutdown:
                    return False
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._condition.wait(remaining)
            return True

    # =========================================================================
    # WRITE SIDE
    # =========================================================================

    def on_inputs_changed(self, inputs: QuoteInputs):
        """Post a new input bundle; supersedes any pending or running pass"""
        with self._condition:
            if self._shutdown:
                raise RuntimeError("Controller has been shut down")
            self._inputs = inputs
            self._generation += 1
            self._changed_at = time.monotonic()
            self._state = ControllerState.RECOMPUTING
            if self._cancel_event is not None:
                self._cancel_event.set()
            self._condition.notify_all()
        logger.debug(f"RECOMPUTE: Inputs changed (generation {self._generation})")

    def _update(self, **changes):
        # Read-modify-post under one lock hold so concurrent updates compose
        with self._condition:
            current = self._inputs or QuoteInputs()
            self.on_inputs_changed(current.replace(**changes))

    def update_filters(self, filter_spec: FilterSpec):
        self._update(filter_spec=filter_spec)

    def update_roster(self, members: Sequence[Member]):
        self._update(members=tuple(members))

    def update_classes(self, classes: Sequence[BenefitClass]):
        self._update(classes=tuple(classes))

    def update_catalog(self, plans: Sequence[Plan]):
        self._update(plans=tuple(plans))

    def shutdown(self, timeout: Optional[float] = None):
        """Stop the worker, cancelling any in-flight pass"""
        with self._condition:
            self._shutdown = True
            if self._cancel_event is not None:
                self._cancel_event.set()
            self._condition.notify_all()
        self._worker.join(timeout)

    # =========================================================================
    # WORKER
    # =========================================================================

    def _next_job(self):
        """Wait for a posted generation whose debounce window has elapsed"""
        with self._condition:
            while True:
                if self._shutdown:
                    return None
                if self._inputs is not None and self._result_generation < self._generation:
                    quiet_for = time.monotonic() - self._changed_at
                    if quiet_for >= self.settings.debounce_seconds:
                        self._cancel_event = threading.Event()
                        return self._generation, self._inputs, self._cancel_event
                    self._condition.wait(self.settings.debounce_seconds - quiet_for)
                else:
                    self._condition.wait()

    def _run(self):
        while True:
            job = self._next_job()
            if job is None:
                return
            generation, inputs, cancel_event = job

            try:
                result = self._recompute(inputs, self.settings, cancel_event)
            except PassCancelled:
                logger.debug(f"RECOMPUTE: Generation {generation} superseded")
                continue
            except InvariantViolation as e:
                logger.exception(
                    f"RECOMPUTE: Invariant violation in generation {generation} "
                    f"({len(inputs.members)} members, {len(inputs.plans)} plans): {e}"
                )
                self._finish(generation, error=e)
                continue
            except Exception as e:
                logger.exception(f"RECOMPUTE: Pass failed for generation {generation}: {e}")
                self._finish(generation, error=e)
                continue

            self._finish(generation, result=result)

    def _finish(self, generation: int, result: Optional[QuoteResult] = None,
                error: Optional[Exception] = None):
        with self._condition:
            if generation != self._generation:
                # Newer inputs arrived; this output is stale
                return
            if result is not None:
                self._result = result
                self._last_error = None
            else:
                self._last_error = error
            subscribers = list(self._subscribers) if result is not None else []

        for callback in subscribers:
            try:
                callback(result)
            except Exception:
                logger.exception(f"RECOMPUTE: Subscriber {callback!r} failed")

        with self._condition:
            self._result_generation = max(self._result_generation, generation)
            self._cancel_event = None
            if self._result_generation >= self._generation:
                self._state = ControllerState.IDLE
            self._condition.notify_all()
