from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeliveryStyle(str, Enum):
    SYNCHRONOUS = "synchronous"
    CALLBACK = "callback"
    ASYNCHRONOUS = "asynchronous"


class CallMode(str, Enum):
    EXACT = "exact"
    SUBSET = "subset"
    COUNT_ONLY = "count_only"


class ResultDescriptor(BaseModel):
    """Scripted outcome for one intercepted call"""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    payload: Any = None
    delivery: DeliveryStyle = DeliveryStyle.SYNCHRONOUS
    is_error: bool = False


class ExpectedCall(BaseModel):
    """Expected argument set for one call (or every call when used as 'always')"""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    args: List[Any] = Field(default_factory=list)
    kwargs: Dict[str, Any] = Field(default_factory=dict)
    mode: CallMode = CallMode.EXACT


class FinisherMarker(BaseModel):
    """Zero-based call index after which the response counts as produced"""
    model_config = ConfigDict(frozen=True)

    iteration: int = Field(default=0, ge=0)


@dataclass
class CallRecord:
    """Snapshot of the arguments one intercepted call received"""
    args: List[Any]
    kwargs: Dict[str, Any] = field(default_factory=dict)
    callback_index: Optional[int] = None

    def comparable_args(self) -> List[Any]:
        """Positional arguments minus the callback slot consumed by the mock."""
        if self.callback_index is None:
            return list(self.args)
        return [arg for i, arg in enumerate(self.args) if i != self.callback_index]


@dataclass
class MockFunctionRecord:
    """Everything kvetch tracks for one (mock name, function name) pair"""
    mock_name: str
    func_name: str
    target: Any
    expected: List[ExpectedCall] = field(default_factory=list)
    expected_always: Optional[ExpectedCall] = None
    results: List[ResultDescriptor] = field(default_factory=list)
    always_result: Optional[ResultDescriptor] = None
    actual: List[CallRecord] = field(default_factory=list)
    call_count: int = 0
    ignored: bool = False
    finisher: Optional[FinisherMarker] = None
    handle: Any = None

    def resolve_result(self) -> Optional[ResultDescriptor]:
        if self.always_result is not None:
            return self.always_result
        if self.call_count < len(self.results):
            return self.results[self.call_count]
        return None

    def explicit_expectation(self, index: int) -> Optional[ExpectedCall]:
        if index < len(self.expected):
            return self.expected[index]
        return None

    @property
    def has_scripted_results(self) -> bool:
        return self.always_result is not None or bool(self.results)
