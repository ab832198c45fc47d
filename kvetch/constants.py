"""
Shared constants for kvetch scenarios and mocks.
"""
from enum import Enum


ORDINAL_VALUES = {
    0: "first",
    1: "second",
    2: "third",
    3: "fourth",
    4: "fifth",
    5: "sixth",
    6: "seventh",
    7: "eighth",
    8: "ninth",
    9: "tenth",
    10: "eleventh",
    11: "twelfth",
    12: "thirteenth",
    13: "fourteenth",
    14: "fifteenth",
    15: "sixteenth",
    16: "seventeenth",
    17: "eighteenth",
    18: "nineteenth",
    19: "twentieth",
}


def ordinal(index: int) -> str:
    """Render a zero-based position as an English ordinal ("first", "21st", ...)."""
    if index in ORDINAL_VALUES:
        return ORDINAL_VALUES[index]

    number = index + 1
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


class _IgnoreParamType:
    """Sentinel excluding an expected parameter position from comparison."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "IgnoreParam"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_IgnoreParamType, ())


IgnoreParam = _IgnoreParamType()

# Expected argument list for a call that takes no parameters
EmptyParameters: list = []

RESPONSE_MOCK_NAME = "HttpResponseMock"

RESPONSE_END_FUNCTIONS = (
    "send",
    "json",
    "jsonp",
    "redirect",
    "send_file",
    "render",
    "send_status",
    "end",
)

DEFAULT_HEADER_FUNCTION = "set"


class ScenarioType(str, Enum):
    FROM_SYNCHRONOUS = "FromSynchronousScenario"
    FROM_AWAITABLE = "FromAwaitableScenario"
    FROM_CALLBACK = "FromCallbackScenario"
    REQUEST_RESPONSE = "RequestResponseScenario"
