import copy
import inspect
from typing import Any, Dict, Iterator, List, Optional, Sequence

from . import comparator
from .constants import IgnoreParam, RESPONSE_MOCK_NAME, ordinal
from .errors import ERROR_MESSAGES, KvetchError, build_error
from .finisher import FinisherCoordinator
from .interceptor import Interceptor
from .logging_config import get_logger
from .models import (
    CallMode,
    CallRecord,
    DeliveryStyle,
    ExpectedCall,
    FinisherMarker,
    MockFunctionRecord,
    ResultDescriptor,
)
from .tester import Tester

logger = get_logger("mocks")


class _RecordingWrapper:
    """Stand-in installed over an intercepted function.

    A plain callable object rather than a function so that, when installed
    on a class, it is not bound as a method and never receives ``self``.
    """

    def __init__(self, registry: "MockRegistry", mock_name: str, func_name: str):
        self._registry = registry
        self.mock_name = mock_name
        self.func_name = func_name
        self.__name__ = func_name

    def __call__(self, *args, **kwargs):
        return self._registry._handle_call(self.mock_name, self.func_name, args, kwargs)

    def __repr__(self):
        return f"<kvetch mock {self.mock_name}.{self.func_name}>"


async def _settle(descriptor: ResultDescriptor):
    if descriptor.is_error:
        raise descriptor.payload
    return descriptor.payload


def _is_exception(payload: Any) -> bool:
    if isinstance(payload, BaseException):
        return True
    return isinstance(payload, type) and issubclass(payload, BaseException)


class MockRegistry:
    """
    Owns every intercepted function for one scenario.

    Records each call's arguments, hands back the scripted result for that
    call, and afterwards verifies the recorded calls against expectations.
    """

    def __init__(
        self,
        tester: Optional[Tester] = None,
        interceptor: Optional[Interceptor] = None,
        coordinator: Optional[FinisherCoordinator] = None,
        debug: bool = True
    ):
        self._mocks: Dict[str, Dict[str, MockFunctionRecord]] = {}
        self.tester = tester or Tester()
        self.interceptor = interceptor or Interceptor()
        self.coordinator = coordinator or FinisherCoordinator()
        self.finalized = False
        self.runtime_error: Optional[KvetchError] = None
        self._no_debug = not debug

    # ============================================================
    # BUILDING
    # ============================================================

    def intercept(self, mock_name: str, func_name: str, target: Any) -> MockFunctionRecord:
        """Replace target.<func_name> with a recording wrapper."""
        if not isinstance(mock_name, str):
            raise build_error("MockThisFunctionMockString")
        if not isinstance(func_name, str):
            raise build_error("MockThisFunctionString")
        if target is None:
            raise build_error("MockThisFunctionObject")
        if not callable(getattr(target, func_name, None)):
            raise build_error("FunctionNotInMock", func_name, mock_name)
        if self.is_intercepted(mock_name, func_name):
            raise build_error("MockAlreadyExists", mock_name, func_name)

        record = MockFunctionRecord(mock_name=mock_name, func_name=func_name, target=target)
        wrapper = _RecordingWrapper(self, mock_name, func_name)
        record.handle = self.interceptor.replace(target, func_name, wrapper)
        self._mocks.setdefault(mock_name, {})[func_name] = record

        logger.debug(f"Intercepted {mock_name}.{func_name}")
        return record

    def intercept_at_most_once(self, mock_name: str, func_name: str, target: Any) -> MockFunctionRecord:
        if self.is_intercepted(mock_name, func_name):
            return self._mocks[mock_name][func_name]
        return self.intercept(mock_name, func_name, target)

    def is_intercepted(self, mock_name: str, func_name: str) -> bool:
        return func_name in self._mocks.get(mock_name, {})

    def script_result(self, mock_name: str, func_name: str, payload: Any,
                      delivery: DeliveryStyle = DeliveryStyle.SYNCHRONOUS, is_error: bool = False) -> None:
        """Queue the result for the next unscripted call of mock_name.func_name."""
        record = self._get_record("script_result", mock_name, func_name)
        record.results.append(self._describe(mock_name, func_name, payload, delivery, is_error))

    def script_always_result(self, mock_name: str, func_name: str, payload: Any,
                             delivery: DeliveryStyle = DeliveryStyle.SYNCHRONOUS, is_error: bool = False) -> None:
        """Use one result for every call, overriding queued results."""
        record = self._get_record("script_always_result", mock_name, func_name)
        record.always_result = self._describe(mock_name, func_name, payload, delivery, is_error)

    def expect_call(self, mock_name: str, func_name: str, args: Sequence[Any],
                    mode: CallMode = CallMode.EXACT, kwargs: Optional[Dict[str, Any]] = None) -> None:
        record = self._get_record("expect_call", mock_name, func_name)
        record.expected.append(self._expectation("expect_call", args, mode, kwargs))

    def expect_call_count_only(self, mock_name: str, func_name: str) -> None:
        record = self._get_record("expect_call_count_only", mock_name, func_name)
        record.expected.append(ExpectedCall(mode=CallMode.COUNT_ONLY))

    def expect_always_call(self, mock_name: str, func_name: str, args: Sequence[Any],
                           mode: CallMode = CallMode.EXACT, kwargs: Optional[Dict[str, Any]] = None) -> None:
        """Check every call against one argument set; the call count is no longer checked."""
        record = self._get_record("expect_always_call", mock_name, func_name)
        record.expected_always = self._expectation("expect_always_call", args, mode, kwargs)

    def ignore_function(self, mock_name: str, func_name: str) -> None:
        record = self._get_record("ignore_function", mock_name, func_name)
        record.ignored = True

    def mark_finisher(self, mock_name: str, func_name: str, iteration: int = 0) -> None:
        """The zero-based `iteration`-th call to this function ends the waiting phase."""
        record = self._get_record("mark_finisher", mock_name, func_name)
        if isinstance(iteration, bool) or not isinstance(iteration, int) or iteration < 0:
            raise build_error("FinisherIteration", mock_name, func_name)

        record.finisher = FinisherMarker(iteration=iteration)
        self.coordinator.arm(mock_name, func_name, iteration)

    def clear_finishers(self) -> None:
        for record in self.records():
            record.finisher = None
        self.coordinator.disarm()

    def no_debug(self) -> None:
        self._no_debug = True

    # ============================================================
    # EXECUTION
    # ============================================================

    def finalize(self) -> None:
        """Stop recording; later calls still get their scripted results."""
        if not self.finalized:
            logger.debug("Recording finalized")
        self.finalized = True

    def latch(self, error: KvetchError) -> None:
        """Keep the first runtime error as the scenario's terminal error."""
        if self.runtime_error is None:
            self.runtime_error = error

    def _handle_call(self, mock_name: str, func_name: str, args: tuple, kwargs: dict):
        record = self._mocks[mock_name][func_name]
        descriptor = record.resolve_result()
        recording = not self.finalized
        call = None

        # Calls after the finisher are not recorded; verification may already be reading
        if recording:
            call = CallRecord(args=self._snapshot(args), kwargs=self._snapshot(kwargs))
            record.actual.append(call)
            logger.debug(f"Recorded {ordinal(record.call_count)} call to {mock_name}.{func_name}")

        if descriptor is None:
            error = build_error("MissingMockedData", ordinal(record.call_count), mock_name, func_name)
            if recording:
                self.latch(error)
            raise error

        if (record.finisher is not None
                and record.finisher.iteration == record.call_count
                and not self.finalized):
            self.finalize()
            self.coordinator.signal(mock_name, func_name)

        record.call_count += 1

        if descriptor.delivery is DeliveryStyle.CALLBACK:
            return self._callback_result(mock_name, func_name, descriptor, args, call)
        if descriptor.delivery is DeliveryStyle.ASYNCHRONOUS:
            return _settle(descriptor)
        return self._synchronous_result(descriptor)

    def _callback_result(self, mock_name: str, func_name: str, descriptor: ResultDescriptor,
                         args: tuple, call: Optional[CallRecord]):
        callback = args[-1] if args else None
        if not callable(callback):
            error = build_error("MissingCallback", mock_name, func_name)
            if call is not None:
                self.latch(error)
            raise error

        if call is not None:
            call.callback_index = len(args) - 1
        callback(*descriptor.payload)

    @staticmethod
    def _synchronous_result(descriptor: ResultDescriptor):
        if descriptor.is_error:
            raise descriptor.payload
        return descriptor.payload

    def _snapshot(self, values):
        memo: Dict[int, Any] = {}
        if isinstance(values, dict):
            return {key: self._copy_value(value, memo) for key, value in values.items()}
        return [self._copy_value(value, memo) for value in values]

    @staticmethod
    def _copy_value(value: Any, memo: Dict[int, Any]) -> Any:
        if inspect.isroutine(value):
            return value
        try:
            return copy.deepcopy(value, memo)
        except (TypeError, copy.Error, RecursionError) as err:
            logger.warning(f"Could not snapshot {type(value).__name__} argument, recording it by reference: {err}")
            return value

    # ============================================================
    # VERIFICATION
    # ============================================================

    def verify(self) -> None:
        """
        Check every recorded call against its expectations.

        Response functions are checked last so their failures are the ones
        reported when several mocks disagree. Raises on the first mismatch.
        """
        mock_names = [name for name in self._mocks if name != RESPONSE_MOCK_NAME]
        if RESPONSE_MOCK_NAME in self._mocks:
            mock_names.append(RESPONSE_MOCK_NAME)

        try:
            for mock_name in mock_names:
                for record in self._mocks[mock_name].values():
                    self._verify_function(record)
        except KvetchError as err:
            self.latch(err)
            raise

    def _verify_function(self, record: MockFunctionRecord) -> None:
        if record.ignored:
            return

        mock_name = record.mock_name
        display = self._display_name(mock_name, record.func_name)
        always = record.expected_always

        if always is None and len(record.actual) != len(record.expected):
            raise build_error("MockCalledWrongNumberOfTimes", mock_name, display,
                              len(record.expected), len(record.actual))

        for index, call in enumerate(record.actual):
            explicit = record.explicit_expectation(index)
            if explicit is not None and explicit.mode is CallMode.COUNT_ONLY:
                continue

            expected = always if always is not None else explicit
            mode = comparator.decide(
                True if explicit is not None and explicit.mode is CallMode.SUBSET else None,
                always is not None and always.mode is CallMode.SUBSET,
            )
            self._verify_call(mock_name, display, index, call, expected, mode, always is not None)

    def _verify_call(self, mock_name: str, display: str, index: int, call: CallRecord,
                     expected: ExpectedCall, mode: CallMode, using_always: bool) -> None:
        actual_args = call.comparable_args()

        # Positions beyond the expected list are reported by the count check below
        for position, actual_value in enumerate(actual_args[:len(expected.args)]):
            expected_value = expected.args[position]
            if expected_value is IgnoreParam:
                continue
            self._compare(actual_value, expected_value, mode, ordinal(position),
                          mock_name, display, index, using_always)

        actual_keys, expected_keys = set(call.kwargs), set(expected.kwargs)
        for key in sorted(actual_keys & expected_keys):
            if expected.kwargs[key] is IgnoreParam:
                continue
            self._compare(call.kwargs[key], expected.kwargs[key], mode, f"'{key}' keyword",
                          mock_name, display, index, using_always)

        if len(actual_args) != len(expected.args):
            raise build_error("WrongNumberOfParams", ordinal(index), mock_name, display,
                              len(expected.args), len(actual_args))
        if actual_keys != expected_keys:
            raise build_error("WrongKeywordParams", ordinal(index), mock_name, display,
                              sorted(expected_keys), sorted(actual_keys))

    def _compare(self, actual: Any, expected: Any, mode: CallMode, param_label: str,
                 mock_name: str, display: str, index: int, using_always: bool) -> None:
        message = ERROR_MESSAGES["ComparisonShouldEqual"].template % (
            param_label, mock_name, display, ordinal(index))

        if mode is CallMode.SUBSET:
            self.tester.should_be_subset(actual=actual, expected=expected, message=message,
                                         using_always=using_always, no_debug=self._no_debug)
        else:
            self.tester.should_equal(actual=actual, expected=expected, message=message,
                                     using_always=using_always, no_debug=self._no_debug)

    # ============================================================
    # TEARDOWN AND INSPECTION
    # ============================================================

    def restore(self) -> int:
        """Put every intercepted function back. Returns how many were restored."""
        restored = 0
        for record in self.records():
            if record.handle is not None and record.handle.restore():
                restored += 1
        if restored:
            logger.debug(f"Restored {restored} intercepted function(s)")
        return restored

    def records(self) -> Iterator[MockFunctionRecord]:
        for functions in self._mocks.values():
            yield from functions.values()

    def get_record(self, mock_name: str, func_name: str) -> MockFunctionRecord:
        return self._get_record("get_record", mock_name, func_name)

    def actual_calls(self, mock_name: str, func_name: str) -> List[CallRecord]:
        return list(self.get_record(mock_name, func_name).actual)

    # ============================================================
    # UTILITIES
    # ============================================================

    def _get_record(self, operation: str, mock_name: str, func_name: str) -> MockFunctionRecord:
        if not isinstance(mock_name, str):
            raise build_error("MockNameString", operation)
        if not isinstance(func_name, str):
            raise build_error("FunctionNameString", operation)
        if not self.is_intercepted(mock_name, func_name):
            raise build_error("MissingMockThisFunction", mock_name, func_name)
        return self._mocks[mock_name][func_name]

    @staticmethod
    def _expectation(operation: str, args: Sequence[Any], mode: CallMode,
                     kwargs: Optional[Dict[str, Any]]) -> ExpectedCall:
        if not isinstance(args, (list, tuple)):
            raise build_error("ExpectedParamsArray", operation)
        return ExpectedCall(args=list(args), kwargs=dict(kwargs or {}), mode=mode)

    @staticmethod
    def _describe(mock_name: str, func_name: str, payload: Any,
                  delivery: DeliveryStyle, is_error: bool) -> ResultDescriptor:
        if delivery is DeliveryStyle.CALLBACK:
            if not isinstance(payload, (list, tuple)):
                raise build_error("CallbackDataToReturn", mock_name, func_name)
            payload = tuple(payload)
        elif is_error and not _is_exception(payload):
            raise build_error("ErrorPayloadNotException", mock_name, func_name)
        return ResultDescriptor(payload=payload, delivery=delivery, is_error=is_error)

    @staticmethod
    def _display_name(mock_name: str, func_name: str) -> str:
        if mock_name == RESPONSE_MOCK_NAME:
            return f"{func_name} (i.e. res.{func_name})"
        return func_name
