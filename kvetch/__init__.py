"""
kvetch: record, script and verify the calls a unit under test makes.
"""
from .config import KvetchSettings, get_settings, load_settings
from .constants import EmptyParameters, IgnoreParam, RESPONSE_MOCK_NAME
from .errors import (
    ComparisonError,
    ErrorKind,
    KvetchError,
    ScenarioBuildError,
    ScenarioRuntimeError,
    UncheckedError,
)
from .finisher import FinisherCoordinator
from .http_scenario import HttpResponseMock, RequestResponseScenario
from .mocks import MockRegistry
from .models import CallMode, DeliveryStyle
from .scenario import Scenario, ScenarioResult, ScenarioState
from .scenarios import CallbackError, FromAwaitableScenario, FromCallbackScenario, FromSynchronousScenario

__version__ = "0.1.0"

__all__ = [
    "CallMode",
    "CallbackError",
    "ComparisonError",
    "DeliveryStyle",
    "EmptyParameters",
    "ErrorKind",
    "FinisherCoordinator",
    "FromAwaitableScenario",
    "FromCallbackScenario",
    "FromSynchronousScenario",
    "HttpResponseMock",
    "IgnoreParam",
    "KvetchError",
    "KvetchSettings",
    "MockRegistry",
    "RESPONSE_MOCK_NAME",
    "RequestResponseScenario",
    "Scenario",
    "ScenarioBuildError",
    "ScenarioResult",
    "ScenarioRuntimeError",
    "ScenarioState",
    "UncheckedError",
    "get_settings",
    "load_settings",
]
