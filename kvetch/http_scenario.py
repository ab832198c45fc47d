"""
Request/response scenarios for HTTP-handler style entry points.

The handler is called as ``handler(*request_params, response)``. Its
response object is a chainable stand-in whose functions are intercepted
under the mock name ``HttpResponseMock``. Verification starts as soon as the
response is finished (``send``, ``json``, ``end``, ...) or a designated test
finisher is called, even if the handler still has background work running.
"""
import asyncio
import inspect
from typing import Any, List, Optional, Sequence

from .config import KvetchSettings
from .constants import DEFAULT_HEADER_FUNCTION, RESPONSE_END_FUNCTIONS, RESPONSE_MOCK_NAME, ScenarioType
from .errors import build_error
from .logging_config import get_logger
from .mocks import MockRegistry
from .models import CallMode, DeliveryStyle
from .scenario import Scenario, ScenarioResult, ScenarioState, building

logger = get_logger("http_scenario")


class HttpResponseMock:
    """Chainable response object handed to the handler under test"""

    def status(self, code):
        return self

    def set(self, name, value=None):
        return self

    def header(self, name, value=None):
        return self

    def cookie(self, name, value, **options):
        return self

    def clear_cookie(self, name, **options):
        return self

    def type(self, content_type):
        return self

    def location(self, url):
        return self

    def send(self, body=None):
        return self

    def json(self, body=None):
        return self

    def jsonp(self, body=None):
        return self

    def redirect(self, *args):
        return self

    def send_file(self, path, **options):
        return self

    def render(self, view, context=None):
        return self

    def send_status(self, code):
        return self

    def end(self, data=None):
        return self


class RequestResponseScenario(Scenario):
    """Scenario for handlers that answer through a response object."""

    scenario_type = ScenarioType.REQUEST_RESPONSE

    def __init__(self, settings: Optional[KvetchSettings] = None, registry: Optional[MockRegistry] = None,
                 response: Any = None):
        super().__init__(settings, registry)
        self.response = response if response is not None else HttpResponseMock()
        self._test_finisher: Optional[tuple] = None

    # ============================================================
    # REQUEST
    # ============================================================

    @building
    def with_http_request(self, request: Any):
        if request is None:
            raise build_error("HttpRequestMissing")
        self._input_params = [request]

    @building
    def with_test_finisher_function(self, mock_name: str, func_name: str, iteration: int = 0):
        """End the waiting phase on the `iteration`-th call to mock_name.func_name instead of on the response."""
        if isinstance(iteration, bool) or not isinstance(iteration, int) or iteration < 0:
            raise build_error("FinisherIteration", mock_name, func_name)
        self._test_finisher = (mock_name, func_name, iteration)

    # ============================================================
    # RESPONSE EXPECTATIONS
    # ============================================================

    @building
    def res_should_be_called_with(self, func_name: str, params: Sequence[Any], kwargs=None):
        self._intercept_response("res_should_be_called_with", func_name)
        self.registry.expect_call(RESPONSE_MOCK_NAME, func_name, params, CallMode.EXACT, kwargs)

    @building
    def res_should_be_called_with_subset(self, func_name: str, params: Sequence[Any], kwargs=None):
        self._intercept_response("res_should_be_called_with_subset", func_name)
        self.registry.expect_call(RESPONSE_MOCK_NAME, func_name, params, CallMode.SUBSET, kwargs)

    @building
    def res_should_always_be_called_with(self, func_name: str, params: Sequence[Any], kwargs=None):
        self._intercept_response("res_should_always_be_called_with", func_name)
        self.registry.expect_always_call(RESPONSE_MOCK_NAME, func_name, params, CallMode.EXACT, kwargs)

    @building
    def res_does_return(self, func_name: str, data: Any):
        self._intercept_response("res_does_return", func_name)
        self.registry.script_result(RESPONSE_MOCK_NAME, func_name, data, DeliveryStyle.SYNCHRONOUS)

    @building
    def res_does_always_return(self, func_name: str, data: Any):
        self._intercept_response("res_does_always_return", func_name)
        self.registry.script_always_result(RESPONSE_MOCK_NAME, func_name, data, DeliveryStyle.SYNCHRONOUS)

    @building
    def res_does_return_self(self, func_name: str):
        self._intercept_response("res_does_return_self", func_name)
        self.registry.script_always_result(RESPONSE_MOCK_NAME, func_name, self.response, DeliveryStyle.SYNCHRONOUS)

    @building
    def res_should_contain_header(self, name: str, value: str, func_name: str = DEFAULT_HEADER_FUNCTION):
        if not isinstance(name, str):
            raise build_error("HeaderNameShouldBeString")
        if not isinstance(value, str):
            raise build_error("HeaderValueShouldBeString")

        self._intercept_response("res_should_contain_header", func_name)
        self.registry.expect_call(RESPONSE_MOCK_NAME, func_name, [name, value])

    def _intercept_response(self, operation: str, func_name: str) -> None:
        if not isinstance(func_name, str):
            raise build_error("ResShouldBeCalledWithFunctionString", operation)
        self.registry.intercept_at_most_once(RESPONSE_MOCK_NAME, func_name, self.response)

    # ============================================================
    # EXECUTION
    # ============================================================

    def _validate_scenario(self) -> None:
        if self._entry_object is None or self._entry_name is None:
            raise build_error("MissingEntryPoint")
        if self._input_params is None:
            raise build_error("HttpReqUndefined")

    def _prepare(self) -> None:
        finishers = [name for name in RESPONSE_END_FUNCTIONS if callable(getattr(self.response, name, None))]
        for name in finishers:
            self.registry.intercept_at_most_once(RESPONSE_MOCK_NAME, name, self.response)

        expected_finishers = self._expected_finishers(finishers)
        if len(expected_finishers) > 1:
            raise build_error("ExactlyOneResponseFinisher",
                              ", ".join(RESPONSE_END_FUNCTIONS), ", ".join(expected_finishers))

        # Unscripted response functions chain like the real response object
        for record in self._response_records():
            if not record.has_scripted_results:
                self.registry.script_always_result(RESPONSE_MOCK_NAME, record.func_name, self.response)

        self.registry.clear_finishers()
        if self._test_finisher is not None:
            self.registry.mark_finisher(*self._test_finisher)
        else:
            for name in finishers:
                self.registry.mark_finisher(RESPONSE_MOCK_NAME, name, 0)

    def _response_records(self) -> List:
        return [record for record in self.registry.records() if record.mock_name == RESPONSE_MOCK_NAME]

    def _expected_finishers(self, finishers: List[str]) -> List[str]:
        return [
            record.func_name for record in self._response_records()
            if record.func_name in finishers and (record.expected or record.expected_always is not None)
        ]

    async def _execute(self, result: ScenarioResult) -> Any:
        loop = asyncio.get_running_loop()
        entry_task = loop.create_task(self._run_entry())
        finisher_task = loop.create_task(self.registry.coordinator.wait())

        self._transition(ScenarioState.AWAITING_COMPLETION)
        await asyncio.wait({entry_task, finisher_task}, return_when=asyncio.FIRST_COMPLETED)

        if not finisher_task.done():
            finisher_task.cancel()

        if entry_task.done():
            return entry_task.result()

        logger.debug(f"Response finished by {self.registry.coordinator.fired_by} before the handler completed")
        entry_task.add_done_callback(_log_background_outcome)
        result.background = entry_task
        return None

    async def _run_entry(self) -> Any:
        outcome = self._invoke_entry(self.response)
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome


def _log_background_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Handler work that continued after the response finished raised {error!r}")
