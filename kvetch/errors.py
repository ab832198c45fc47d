"""
Error taxonomy and message catalog for kvetch.

Codes are grouped by phase:
    1000s  scenario building
    2000s  mock building
    3000s  test execution and verification
    4000s  request/response scenarios
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    BUILD = "BuildError"
    RUNTIME = "RuntimeError"
    COMPARISON = "ComparisonError"
    UNCHECKED = "UncheckedError"


KIND_PREFIXES: Dict[ErrorKind, str] = {
    ErrorKind.BUILD: "Kvetch Scenario Build Error",
    ErrorKind.RUNTIME: "Kvetch Runtime Error",
    ErrorKind.COMPARISON: "Kvetch Comparison Error",
    ErrorKind.UNCHECKED: "Unchecked Error",
}


class ErrorMessage(BaseModel):
    """One catalog entry: a numeric code, a %-style template and its kind"""
    model_config = ConfigDict(frozen=True)

    name: str
    code: int
    template: str
    kind: ErrorKind


class KvetchError(Exception):
    """Base class for every error raised by the engine."""

    kind: ErrorKind = ErrorKind.RUNTIME

    def __init__(self, message: str, code: Optional[int] = None, name: Optional[str] = None):
        self.message = message
        self.code = code
        self.name = name
        super().__init__(self.render())

    def render(self) -> str:
        prefix = KIND_PREFIXES[self.kind]
        if self.code is None:
            return f"{prefix}: {self.message}"
        return f"{prefix} ({self.code}): {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "errorKind": self.kind.value}


class ScenarioBuildError(KvetchError):
    kind = ErrorKind.BUILD


class ScenarioRuntimeError(KvetchError):
    kind = ErrorKind.RUNTIME


class ComparisonError(KvetchError):
    kind = ErrorKind.COMPARISON


class UncheckedError(KvetchError):
    """The code under test raised outside of any expectation check."""

    kind = ErrorKind.UNCHECKED

    def __init__(self, message: str, code: Optional[int] = None, name: Optional[str] = None,
                 original: Optional[BaseException] = None):
        self.original = original
        super().__init__(message, code, name)


ERROR_CLASSES = {
    ErrorKind.BUILD: ScenarioBuildError,
    ErrorKind.RUNTIME: ScenarioRuntimeError,
    ErrorKind.COMPARISON: ComparisonError,
    ErrorKind.UNCHECKED: UncheckedError,
}


def _entry(name: str, code: int, template: str, kind: ErrorKind) -> ErrorMessage:
    return ErrorMessage(name=name, code=code, template=template, kind=kind)


_CATALOG = [
    # Scenario building
    _entry("InputParamsArray", 1000,
           "When calling 'with_input_params', the parameter must be a list or tuple.",
           ErrorKind.BUILD),
    _entry("HttpRequestMissing", 1001,
           "When calling 'with_http_request', the request must not be None.",
           ErrorKind.BUILD),
    _entry("MockThisFunctionMockString", 1002,
           "When calling 'mock_this_function', the first parameter must be a string representing the mock key.",
           ErrorKind.BUILD),
    _entry("MockThisFunctionString", 1003,
           "When calling 'mock_this_function', the second parameter must be a string representing the function to mock.",
           ErrorKind.BUILD),
    _entry("MockThisFunctionObject", 1004,
           "When calling 'mock_this_function', the third parameter must be the object containing the function to mock.",
           ErrorKind.BUILD),
    _entry("EntryPointObject", 1005,
           "When calling 'with_entry_point', the first parameter must be the object that contains the entry point function.",
           ErrorKind.BUILD),
    _entry("EntryPointString", 1006,
           "When calling 'with_entry_point', the second parameter must be a string naming the function that starts the test.",
           ErrorKind.BUILD),
    _entry("EntryPointFunction", 1007,
           "When calling 'with_entry_point', the second parameter must be the name of a function on the first parameter.",
           ErrorKind.BUILD),
    _entry("MockNameString", 1008,
           "When calling '%s', the first parameter must be a string representing the mock key.",
           ErrorKind.BUILD),
    _entry("FunctionNameString", 1009,
           "When calling '%s', the second parameter must be a string representing the function that was mocked.",
           ErrorKind.BUILD),
    _entry("ExpectedParamsArray", 1010,
           "When calling '%s', the expected parameters must be a list or tuple.",
           ErrorKind.BUILD),
    _entry("MissingEntryPoint", 1024,
           "You must define a valid entry point before executing the test.",
           ErrorKind.BUILD),
    _entry("CallbackDataToReturn", 1025,
           "When scripting a callback result for %s.%s, the data must be a list or tuple of the callback's parameters.",
           ErrorKind.BUILD),
    _entry("MissingInputParams", 1029,
           "Before executing a test, you must provide input parameters using 'with_input_params'.",
           ErrorKind.BUILD),
    _entry("HeaderNameShouldBeString", 1030,
           "When using 'res_should_contain_header', the first parameter must be a string equal to the header name.",
           ErrorKind.BUILD),
    _entry("HeaderValueShouldBeString", 1031,
           "When using 'res_should_contain_header', the second parameter must be a string equal to the header value.",
           ErrorKind.BUILD),
    _entry("ErrorPayloadNotException", 1034,
           "When scripting an error for %s.%s, the data must be an exception instance or class.",
           ErrorKind.BUILD),
    _entry("FinisherIteration", 1038,
           "The finisher iteration for %s.%s must be a non-negative integer.",
           ErrorKind.BUILD),
    _entry("ScenarioAlreadyExecuted", 1039,
           "A scenario can only be executed once. Build a new scenario for each test.",
           ErrorKind.BUILD),
    _entry("ScenarioBuildFailed", 1040,
           "This scenario failed to build and its mocks were restored. Build a new scenario.",
           ErrorKind.BUILD),

    # Mock building
    _entry("MissingMockThisFunction", 2000,
           "You must declare the mock %s.%s, using 'mock_this_function' before declaring return values or expectations.",
           ErrorKind.BUILD),
    _entry("FunctionNotInMock", 2001,
           "Function %s does not exist in mock %s.",
           ErrorKind.BUILD),
    _entry("MockAlreadyExists", 2002,
           "Attempted to mock %s.%s, but it was already mocked.",
           ErrorKind.BUILD),

    # Execution and verification
    _entry("MissingCallback", 3000,
           "When using a callback result for %s.%s the last parameter in the function call must be the callback function.",
           ErrorKind.RUNTIME),
    _entry("MissingMockedData", 3001,
           "Attempted to get mocked data for the %s call to %s.%s, but it wasn't created in the scenario. "
           "You are missing a 'does_return / does_error' call.",
           ErrorKind.RUNTIME),
    _entry("MockCalledWrongNumberOfTimes", 3002,
           "Expected the mock %s.%s to be called %s time(s), but it was actually called %s time(s).",
           ErrorKind.RUNTIME),
    _entry("ComparisonShouldEqual", 3003,
           "Failed expectation for the %s param in mock %s.%s, the %s time the mock was called ::::",
           ErrorKind.COMPARISON),
    _entry("WrongNumberOfParams", 3004,
           "Expected the %s call to %s.%s to have %s param(s), but it was actually called with %s param(s).",
           ErrorKind.RUNTIME),
    _entry("ResponseMustBePromise", 3005,
           "When using the 'FromAwaitableScenario', the result of the tested code must be awaitable.",
           ErrorKind.RUNTIME),
    _entry("ResponseCannotBePromise", 3006,
           "When using the 'FromSynchronousScenario', the result of the tested code can NOT be awaitable. "
           "See 'FromAwaitableScenario' if you want to test a function returning an awaitable.",
           ErrorKind.RUNTIME),
    _entry("WrongKeywordParams", 3007,
           "Expected the %s call to %s.%s to use keyword param(s) %s, but it was actually called with %s.",
           ErrorKind.RUNTIME),

    # Request/response scenarios
    _entry("ResShouldBeCalledWithFunctionString", 4000,
           "When calling '%s', the first parameter must be a string representing the response function.",
           ErrorKind.BUILD),
    _entry("ExactlyOneResponseFinisher", 4002,
           "Exactly one HTTP Response Finisher can be used per scenario. When a HTTP Response Finisher function is "
           "called, the testable code phase will end, and the validation phase will begin. "
           "Response finishers: %s. Found expectations on: %s.",
           ErrorKind.BUILD),
    _entry("HttpReqUndefined", 4003,
           "Before executing a test, you must provide a request using 'with_http_request' or 'with_input_params'.",
           ErrorKind.BUILD),
    _entry("TestFailure", 4004,
           "Your testable function threw an error: %s",
           ErrorKind.UNCHECKED),
]

ERROR_MESSAGES: Dict[str, ErrorMessage] = {entry.name: entry for entry in _CATALOG}

FAILED_SUBSET_CHECK = "Failed the subset validation. The subset was not found in the superset."


def build_error(name: str, *args: Any, **extra: Any) -> KvetchError:
    """Build the catalog error `name`, filling its template with `args`."""
    entry = ERROR_MESSAGES[name]
    message = entry.template % args if args else entry.template
    error_class = ERROR_CLASSES[entry.kind]
    return error_class(message, code=entry.code, name=entry.name, **extra)


def get_entry(code: int) -> Optional[ErrorMessage]:
    for entry in _CATALOG:
        if entry.code == code:
            return entry
    return None


def list_entries(kind: Optional[ErrorKind] = None):
    return [entry for entry in _CATALOG if kind is None or entry.kind == kind]
