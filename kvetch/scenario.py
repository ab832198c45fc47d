"""
Scenario state machine shared by every entry-point calling convention.

A scenario is configured through chained builder calls, executed exactly
once with ``await scenario.test()`` (or ``scenario.run()`` outside an event
loop), verified, and then torn down:

    Building -> Executing -> AwaitingCompletion -> Verifying -> Done

Every interceptor is restored before the completion callback runs, whether
the run passed or failed.
"""
import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import KvetchSettings, get_settings
from .constants import ScenarioType
from .errors import KvetchError, ScenarioBuildError, UncheckedError, build_error
from .logging_config import get_logger
from .mocks import MockRegistry
from .models import CallMode, DeliveryStyle

logger = get_logger("scenario")


class ScenarioState(str, Enum):
    BUILDING = "building"
    EXECUTING = "executing"
    AWAITING_COMPLETION = "awaiting_completion"
    VERIFYING = "verifying"
    DONE = "done"


@dataclass
class ScenarioResult:
    """Outcome of one scenario run"""
    error: Optional[KvetchError] = None
    errors: List[KvetchError] = field(default_factory=list)
    response: Any = None
    background: Optional[asyncio.Task] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def building(method: Callable) -> Callable:
    """
    Mark a fluent builder method.

    Rejects use once the scenario ran or failed to build, restores installed
    interceptors and retires the scenario when the method raises a build
    error, and returns the scenario for chaining.
    """
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        self._ensure_building()
        try:
            method(self, *args, **kwargs)
        except ScenarioBuildError:
            self._abandon_build()
            raise
        return self
    return wrapper


class Scenario(ABC):
    """Base class for the entry-point calling conventions."""

    scenario_type: ScenarioType

    def __init__(self, settings: Optional[KvetchSettings] = None, registry: Optional[MockRegistry] = None):
        self.settings = settings or get_settings()
        self.registry = registry or MockRegistry(debug=self.settings.debug)
        self.state = ScenarioState.BUILDING
        self.result: Optional[ScenarioResult] = None
        self._entry_object: Any = None
        self._entry_name: Optional[str] = None
        self._input_params: Optional[List[Any]] = None
        self._build_failed = False

    # ============================================================
    # ENTRY POINT
    # ============================================================

    @building
    def with_entry_point(self, entry_object: Any, func_name: str):
        if entry_object is None:
            raise build_error("EntryPointObject")
        if not isinstance(func_name, str):
            raise build_error("EntryPointString")
        if not callable(getattr(entry_object, func_name, None)):
            raise build_error("EntryPointFunction")

        self._entry_object = entry_object
        self._entry_name = func_name

    @building
    def with_input_params(self, params: Sequence[Any]):
        if not isinstance(params, (list, tuple)):
            raise build_error("InputParamsArray")
        self._input_params = list(params)

    # ============================================================
    # MOCKS
    # ============================================================

    @building
    def mock_this_function(self, mock_name: str, func_name: str, target: Any):
        self.registry.intercept(mock_name, func_name, target)

    @building
    def mock_this_function_at_most_once(self, mock_name: str, func_name: str, target: Any):
        self.registry.intercept_at_most_once(mock_name, func_name, target)

    @building
    def should_be_called_with(self, mock_name: str, func_name: str, params: Sequence[Any],
                              kwargs: Optional[Dict[str, Any]] = None):
        self.registry.expect_call(mock_name, func_name, params, CallMode.EXACT, kwargs)

    @building
    def should_be_called_with_subset(self, mock_name: str, func_name: str, params: Sequence[Any],
                                     kwargs: Optional[Dict[str, Any]] = None):
        self.registry.expect_call(mock_name, func_name, params, CallMode.SUBSET, kwargs)

    @building
    def should_be_called(self, mock_name: str, func_name: str):
        self.registry.expect_call_count_only(mock_name, func_name)

    @building
    def should_always_be_called_with(self, mock_name: str, func_name: str, params: Sequence[Any],
                                     kwargs: Optional[Dict[str, Any]] = None):
        self.registry.expect_always_call(mock_name, func_name, params, CallMode.EXACT, kwargs)

    @building
    def should_always_be_called_with_subset(self, mock_name: str, func_name: str, params: Sequence[Any],
                                            kwargs: Optional[Dict[str, Any]] = None):
        self.registry.expect_always_call(mock_name, func_name, params, CallMode.SUBSET, kwargs)

    @building
    def should_always_be_ignored(self, mock_name: str, func_name: str):
        self.registry.ignore_function(mock_name, func_name)

    @building
    def does_return(self, mock_name: str, func_name: str, data: Any):
        self.registry.script_result(mock_name, func_name, data, DeliveryStyle.SYNCHRONOUS)

    @building
    def does_return_async(self, mock_name: str, func_name: str, data: Any):
        self.registry.script_result(mock_name, func_name, data, DeliveryStyle.ASYNCHRONOUS)

    @building
    def does_return_with_callback(self, mock_name: str, func_name: str, data: Sequence[Any]):
        self.registry.script_result(mock_name, func_name, data, DeliveryStyle.CALLBACK)

    @building
    def does_error(self, mock_name: str, func_name: str, error: Any):
        self.registry.script_result(mock_name, func_name, error, DeliveryStyle.SYNCHRONOUS, is_error=True)

    @building
    def does_error_async(self, mock_name: str, func_name: str, error: Any):
        self.registry.script_result(mock_name, func_name, error, DeliveryStyle.ASYNCHRONOUS, is_error=True)

    @building
    def does_error_with_callback(self, mock_name: str, func_name: str, data: Sequence[Any]):
        self.registry.script_result(mock_name, func_name, data, DeliveryStyle.CALLBACK, is_error=True)

    @building
    def does_always_return(self, mock_name: str, func_name: str, data: Any):
        self.registry.script_always_result(mock_name, func_name, data, DeliveryStyle.SYNCHRONOUS)

    @building
    def does_always_return_async(self, mock_name: str, func_name: str, data: Any):
        self.registry.script_always_result(mock_name, func_name, data, DeliveryStyle.ASYNCHRONOUS)

    @building
    def does_always_return_with_callback(self, mock_name: str, func_name: str, data: Sequence[Any]):
        self.registry.script_always_result(mock_name, func_name, data, DeliveryStyle.CALLBACK)

    @building
    def does_always_error(self, mock_name: str, func_name: str, error: Any):
        self.registry.script_always_result(mock_name, func_name, error, DeliveryStyle.SYNCHRONOUS, is_error=True)

    @building
    def does_always_error_async(self, mock_name: str, func_name: str, error: Any):
        self.registry.script_always_result(mock_name, func_name, error, DeliveryStyle.ASYNCHRONOUS, is_error=True)

    @building
    def does_always_error_with_callback(self, mock_name: str, func_name: str, data: Sequence[Any]):
        self.registry.script_always_result(mock_name, func_name, data, DeliveryStyle.CALLBACK, is_error=True)

    @building
    def no_debug(self):
        self.registry.no_debug()

    # ============================================================
    # EXECUTION
    # ============================================================

    async def test(self, done: Optional[Callable] = None) -> ScenarioResult:
        """
        Execute the scenario once and verify every mock.

        Args:
            done: Optional completion callback, called as done(error, response)
                  after all interceptors are restored. May be a coroutine function.

        Returns:
            The ScenarioResult for this run

        Raises:
            ScenarioBuildError: If the scenario is misconfigured
        """
        self._ensure_building()

        try:
            self._validate_scenario()
            self._prepare()
        except ScenarioBuildError:
            self._abandon_build()
            raise

        result = ScenarioResult()
        try:
            await self._run(result)
        finally:
            self._transition(ScenarioState.DONE)
            self.registry.restore()

        self.result = result
        if result.ok:
            logger.info(f"{self.scenario_type.value} passed")
        else:
            logger.info(f"{self.scenario_type.value} failed: {result.error.message}")

        if done is not None:
            outcome = done(result.error, result.response)
            if inspect.isawaitable(outcome):
                await outcome
        return result

    def run(self, done: Optional[Callable] = None) -> ScenarioResult:
        """Run test() on a fresh event loop, for callers without one."""
        return asyncio.run(self.test(done))

    async def _run(self, result: ScenarioResult) -> None:
        unchecked: Optional[UncheckedError] = None

        self._transition(ScenarioState.EXECUTING)
        try:
            result.response = await self._execute(result)
        except Exception as err:
            unchecked = self._wrap_failure(err)

        self._transition(ScenarioState.VERIFYING)
        latched = self.registry.runtime_error
        self.registry.finalize()

        verification_error = None
        try:
            self.registry.verify()
        except KvetchError as err:
            verification_error = err

        result.errors = [e for e in (latched, unchecked, verification_error) if e is not None]
        result.error = latched or verification_error or unchecked

    def _wrap_failure(self, err: Exception) -> Optional[UncheckedError]:
        """Wrap an error thrown by the code under test; latched mock errors pass through."""
        if err is self.registry.runtime_error:
            return None

        logger.debug(f"Code under test raised {err!r}")
        wrapped = build_error("TestFailure", f"{type(err).__name__}: {err}", original=err)
        wrapped.__cause__ = err
        return wrapped

    def _invoke_entry(self, *extra: Any) -> Any:
        entry = getattr(self._entry_object, self._entry_name)
        return entry(*self._input_params, *extra)

    def _ensure_building(self) -> None:
        if self.state is ScenarioState.BUILDING:
            return
        if self._build_failed:
            raise build_error("ScenarioBuildFailed")
        raise build_error("ScenarioAlreadyExecuted")

    def _abandon_build(self) -> None:
        """Restore every interceptor and retire the scenario after a build error."""
        self._build_failed = True
        self._transition(ScenarioState.DONE)
        self.registry.restore()

    def _transition(self, state: ScenarioState) -> None:
        logger.debug(f"{self.scenario_type.value}: {self.state.value} -> {state.value}")
        self.state = state

    def _validate_scenario(self) -> None:
        if self._entry_object is None or self._entry_name is None:
            raise build_error("MissingEntryPoint")
        if self._input_params is None:
            raise build_error("MissingInputParams")

    def _prepare(self) -> None:
        """Hook for variants that install extra interceptors before running."""

    @abstractmethod
    async def _execute(self, result: ScenarioResult) -> Any:
        """Invoke the entry point and return its response; raise if it failed."""
