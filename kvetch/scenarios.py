"""
Scenario variants for synchronous, awaitable and callback-style entry points.
"""
import asyncio
import inspect
from typing import Any

from .constants import ScenarioType
from .errors import build_error
from .logging_config import get_logger
from .scenario import Scenario, ScenarioResult, ScenarioState

logger = get_logger("scenarios")


class CallbackError(Exception):
    """Error value an entry point passed as the first argument of its completion callback"""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(repr(value))


class FromSynchronousScenario(Scenario):
    """The entry point returns its result directly."""

    scenario_type = ScenarioType.FROM_SYNCHRONOUS

    async def _execute(self, result: ScenarioResult) -> Any:
        response = self._invoke_entry()

        if inspect.isawaitable(response):
            if inspect.iscoroutine(response):
                response.close()
            error = build_error("ResponseCannotBePromise")
            self.registry.latch(error)
            raise error

        return response


class FromAwaitableScenario(Scenario):
    """The entry point returns an awaitable (usually a coroutine)."""

    scenario_type = ScenarioType.FROM_AWAITABLE

    async def _execute(self, result: ScenarioResult) -> Any:
        outcome = self._invoke_entry()

        if not inspect.isawaitable(outcome):
            error = build_error("ResponseMustBePromise")
            self.registry.latch(error)
            raise error

        self._transition(ScenarioState.AWAITING_COMPLETION)
        return await outcome


class FromCallbackScenario(Scenario):
    """
    The entry point reports completion through a trailing callback.

    The callback follows the error-first convention: callback(error, *results).
    A single result becomes the scenario response; several become a tuple.
    """

    scenario_type = ScenarioType.FROM_CALLBACK

    async def _execute(self, result: ScenarioResult) -> Any:
        loop = asyncio.get_running_loop()
        completed = loop.create_future()

        def completion(error=None, *results):
            if completed.done():
                logger.warning("Completion callback was invoked more than once; ignoring the extra call")
                return
            completed.set_result((error, results))

        self._invoke_entry(completion)
        self._transition(ScenarioState.AWAITING_COMPLETION)
        error, results = await completed

        if error is not None:
            if isinstance(error, Exception):
                raise error
            raise CallbackError(error)

        if not results:
            return None
        if len(results) == 1:
            return results[0]
        return results
