"""Tests for kvetch.mocks.MockRegistry: interception, scripting and verification."""

import pytest

from collaborators import Calculator, PersonProxy, Point, RealCollaboratorCalled, UserClient, on_failed, on_saved
from kvetch.constants import IgnoreParam, RESPONSE_MOCK_NAME
from kvetch.errors import ComparisonError, ErrorKind, ScenarioBuildError, ScenarioRuntimeError
from kvetch.http_scenario import HttpResponseMock
from kvetch.mocks import MockRegistry
from kvetch.models import CallMode, DeliveryStyle


@pytest.fixture
def registry():
    registry = MockRegistry()
    yield registry
    registry.restore()


class TestIntercept:
    def test_missing_function(self, registry):
        with pytest.raises(ScenarioBuildError) as exc:
            registry.intercept("calc", "divide", Calculator())
        assert exc.value.code == 2001
        assert exc.value.kind is ErrorKind.BUILD
        assert "divide" in exc.value.message

    def test_duplicate_interception(self, registry):
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)
        with pytest.raises(ScenarioBuildError) as exc:
            registry.intercept("calc", "multiply", calc)
        assert exc.value.code == 2002

    def test_at_most_once_reuses_record(self, registry):
        calc = Calculator()
        first = registry.intercept_at_most_once("calc", "multiply", calc)
        second = registry.intercept_at_most_once("calc", "multiply", calc)
        assert first is second

    def test_scripting_unregistered_function(self, registry):
        with pytest.raises(ScenarioBuildError) as exc:
            registry.script_result("calc", "multiply", 4)
        assert exc.value.code == 2000

    def test_expecting_unregistered_function(self, registry):
        with pytest.raises(ScenarioBuildError) as exc:
            registry.expect_call("calc", "multiply", [1, 2])
        assert exc.value.code == 2000

    def test_non_string_names(self, registry):
        with pytest.raises(ScenarioBuildError) as exc:
            registry.intercept(42, "multiply", Calculator())
        assert exc.value.code == 1002

    def test_callback_payload_must_be_sequence(self, registry):
        registry.intercept("calc", "add", Calculator())
        with pytest.raises(ScenarioBuildError) as exc:
            registry.script_result("calc", "add", 5, DeliveryStyle.CALLBACK)
        assert exc.value.code == 1025

    def test_error_payload_must_be_exception(self, registry):
        registry.intercept("calc", "multiply", Calculator())
        with pytest.raises(ScenarioBuildError) as exc:
            registry.script_result("calc", "multiply", "boom", is_error=True)
        assert exc.value.code == 1034

    def test_class_level_interception_does_not_bind_self(self, registry):
        registry.intercept("Calculator", "multiply", Calculator)
        registry.script_result("Calculator", "multiply", 12)

        assert Calculator().multiply(3, 4) == 12
        assert registry.actual_calls("Calculator", "multiply")[0].args == [3, 4]


class TestInterceptedCalls:
    def test_queued_results_then_missing_data(self, registry):
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)
        registry.script_result("calc", "multiply", "a")
        registry.script_result("calc", "multiply", "b")

        assert calc.multiply(1, 1) == "a"
        assert calc.multiply(2, 2) == "b"
        with pytest.raises(ScenarioRuntimeError) as exc:
            calc.multiply(3, 3)

        assert exc.value.code == 3001
        assert "third" in exc.value.message
        assert "calc.multiply" in exc.value.message
        assert registry.runtime_error is exc.value

    def test_always_result_overrides_queue(self, registry):
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)
        registry.script_result("calc", "multiply", "queued")
        registry.script_always_result("calc", "multiply", "always")

        assert [calc.multiply(i, i) for i in range(3)] == ["always"] * 3

    def test_synchronous_error(self, registry):
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)
        registry.script_result("calc", "multiply", ValueError("nope"), is_error=True)

        with pytest.raises(ValueError, match="nope"):
            calc.multiply(1, 2)

    def test_callback_result(self, registry):
        calc = Calculator()
        received = []

        def done(err, value):
            received.append((err, value))

        registry.intercept("calc", "add", calc)
        registry.script_result("calc", "add", [None, 5], DeliveryStyle.CALLBACK)
        registry.expect_call("calc", "add", [2, 3])

        calc.add(2, 3, done)

        assert received == [(None, 5)]
        assert registry.actual_calls("calc", "add")[0].args == [2, 3, done]
        registry.verify()

    def test_callback_missing(self, registry):
        calc = Calculator()
        registry.intercept("calc", "add", calc)
        registry.script_result("calc", "add", [None, 5], DeliveryStyle.CALLBACK)

        with pytest.raises(ScenarioRuntimeError) as exc:
            calc.add(2, 3, "not a callback")
        assert exc.value.code == 3000
        assert registry.runtime_error is exc.value

    @pytest.mark.asyncio
    async def test_asynchronous_result(self, registry):
        client = UserClient()
        registry.intercept("client", "fetch_user", client)
        registry.script_result("client", "fetch_user", {"id": 1, "name": "Ann"}, DeliveryStyle.ASYNCHRONOUS)
        registry.script_result("client", "fetch_user", LookupError("gone"), DeliveryStyle.ASYNCHRONOUS,
                               is_error=True)

        assert await client.fetch_user(1) == {"id": 1, "name": "Ann"}
        with pytest.raises(LookupError):
            await client.fetch_user(2)

    def test_snapshot_isolation(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_always_result("client", "save_user", None)
        user = {"name": "Ann", "tags": ["a"]}

        client.save_user(user)
        user["name"] = "Bob"
        user["tags"].append("b")

        recorded = registry.actual_calls("client", "save_user")[0]
        assert recorded.args == [{"name": "Ann", "tags": ["a"]}]

    def test_keyword_arguments_recorded(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_result("client", "save_user", None)

        client.save_user({"name": "Ann"}, overwrite=True)

        recorded = registry.actual_calls("client", "save_user")[0]
        assert recorded.kwargs == {"overwrite": True}


class TestVerify:
    def _calc(self, registry, results=3):
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)
        registry.script_always_result("calc", "multiply", results)
        return calc

    def test_matching_calls_pass(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, 2])
        registry.expect_call("calc", "multiply", [3, 4])

        calc.multiply(1, 2)
        calc.multiply(3, 4)

        registry.verify()

    def test_wrong_call_count(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, 2])

        calc.multiply(1, 2)
        calc.multiply(1, 2)

        with pytest.raises(ScenarioRuntimeError) as exc:
            registry.verify()
        assert exc.value.code == 3002
        assert "called 1 time(s), but it was actually called 2 time(s)" in exc.value.message
        assert registry.runtime_error is exc.value

    def test_argument_mismatch_names_positions(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, 2])
        registry.expect_call("calc", "multiply", [3, 4])

        calc.multiply(1, 2)
        calc.multiply(3, 5)

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert exc.value.code == 3003
        assert "second param in mock calc.multiply, the second time" in exc.value.message
        assert "expected: 4" in exc.value.message

    def test_no_debug_omits_values(self, registry):
        registry.no_debug()
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, 2])

        calc.multiply(1, 9)

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert "expected:" not in exc.value.message

    def test_ignore_param(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [IgnoreParam, 2])

        calc.multiply("generated-id-123", 2)

        registry.verify()

    def test_extra_falsy_argument_detected(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1])

        calc.multiply(1, 0)

        with pytest.raises(ScenarioRuntimeError) as exc:
            registry.verify()
        assert exc.value.code == 3004
        assert "to have 1 param(s), but it was actually called with 2" in exc.value.message

    def test_missing_argument_detected(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, 2])

        calc.multiply(1)

        with pytest.raises(ScenarioRuntimeError) as exc:
            registry.verify()
        assert exc.value.code == 3004

    def test_always_expectation_skips_count(self, registry):
        calc = self._calc(registry)
        registry.expect_always_call("calc", "multiply", [IgnoreParam, 2])

        for i in range(4):
            calc.multiply(i, 2)

        registry.verify()

    def test_always_expectation_still_checks_each_call(self, registry):
        calc = self._calc(registry)
        registry.expect_always_call("calc", "multiply", [1, 2])

        calc.multiply(1, 2)
        calc.multiply(1, 3)

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert "the second time" in exc.value.message

    def test_subset_expectation(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_always_result("client", "save_user", None)
        registry.expect_call("client", "save_user", [{"name": "Ann"}], CallMode.SUBSET)

        client.save_user({"name": "Ann", "id": 7})

        registry.verify()

    def test_always_subset_expectation(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_always_result("client", "save_user", None)
        registry.expect_always_call("client", "save_user", [{"name": "Ann"}], CallMode.SUBSET)

        client.save_user({"name": "Ann", "id": 7})
        client.save_user({"name": "Ann", "id": 8})

        registry.verify()

    def test_exact_fails_where_subset_passes(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_always_result("client", "save_user", None)
        registry.expect_call("client", "save_user", [{"name": "Ann"}])

        client.save_user({"name": "Ann", "id": 7})

        with pytest.raises(ComparisonError):
            registry.verify()

    def test_count_only(self, registry):
        calc = self._calc(registry)
        registry.expect_call_count_only("calc", "multiply")

        calc.multiply("anything", "at all", "really")

        registry.verify()

    def test_ignored_function(self, registry):
        calc = self._calc(registry)
        registry.ignore_function("calc", "multiply")

        calc.multiply(1, 2)
        calc.multiply(3, 4)

        registry.verify()

    def test_keyword_mismatch(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_always_result("client", "save_user", None)
        registry.expect_call("client", "save_user", [{"name": "Ann"}], kwargs={"overwrite": True})

        client.save_user({"name": "Ann"}, overwrite=False)

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert "'overwrite' keyword" in exc.value.message

    def test_unexpected_keyword(self, registry):
        client = UserClient()
        registry.intercept("client", "save_user", client)
        registry.script_always_result("client", "save_user", None)
        registry.expect_call("client", "save_user", [{"name": "Ann"}])

        client.save_user({"name": "Ann"}, overwrite=False)

        with pytest.raises(ScenarioRuntimeError) as exc:
            registry.verify()
        assert exc.value.code == 3007

    def test_response_functions_verified_last(self, registry):
        response = HttpResponseMock()
        calc = Calculator()
        registry.intercept(RESPONSE_MOCK_NAME, "send", response)
        registry.script_always_result(RESPONSE_MOCK_NAME, "send", response)
        registry.intercept("calc", "multiply", calc)
        registry.script_always_result("calc", "multiply", 1)
        registry.expect_call(RESPONSE_MOCK_NAME, "send", ["expected body"])
        registry.expect_call("calc", "multiply", [1, 1])

        response.send("actual body")
        calc.multiply(2, 2)

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert "calc.multiply" in exc.value.message

    def test_response_function_display_name(self, registry):
        response = HttpResponseMock()
        registry.intercept(RESPONSE_MOCK_NAME, "send", response)
        registry.script_always_result(RESPONSE_MOCK_NAME, "send", response)
        registry.expect_call(RESPONSE_MOCK_NAME, "send", ["expected body"])

        response.send("actual body")

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert "send (i.e. res.send)" in exc.value.message


class TestVerifyArgumentKinds:
    def _calc(self, registry):
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)
        registry.script_always_result("calc", "multiply", 0)
        return calc

    def test_same_function_passes(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, on_saved])

        calc.multiply(1, on_saved)

        registry.verify()

    def test_different_function_fails(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [1, on_saved])

        calc.multiply(1, on_failed)

        with pytest.raises(ComparisonError) as exc:
            registry.verify()
        assert "second param in mock calc.multiply" in exc.value.message

    def test_exception_with_different_message_fails(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [ValueError("expected"), 2])

        calc.multiply(ValueError("other"), 2)

        with pytest.raises(ComparisonError):
            registry.verify()

    def test_equal_exception_passes(self, registry):
        calc = self._calc(registry)
        registry.expect_call("calc", "multiply", [ValueError("expected"), 2])

        calc.multiply(ValueError("expected"), 2)

        registry.verify()

    def test_slotted_argument_matches_itself(self, registry):
        calc = self._calc(registry)
        point = Point(1, 2)
        registry.expect_call("calc", "multiply", [point, 3])

        calc.multiply(point, 3)

        registry.verify()

    def test_slotted_argument_snapshot(self, registry):
        calc = self._calc(registry)
        point = Point(1, 2)
        registry.expect_call("calc", "multiply", [Point(1, 2), 3])

        calc.multiply(point, 3)
        point.x = 10

        registry.verify()


class TestFinisherAndRestore:
    def test_finisher_stops_recording(self, registry):
        proxy = PersonProxy()
        registry.intercept("proxy", "audit", proxy)
        registry.script_always_result("proxy", "audit", None)
        registry.mark_finisher("proxy", "audit", 1)

        proxy.audit("a")
        assert not registry.coordinator.fired
        proxy.audit("b")
        assert registry.coordinator.fired
        assert registry.coordinator.fired_by == ("proxy", "audit")
        proxy.audit("c")

        assert [call.args for call in registry.actual_calls("proxy", "audit")] == [["a"], ["b"]]
        assert registry.get_record("proxy", "audit").call_count == 3

    def test_finisher_iteration_validated(self, registry):
        registry.intercept("proxy", "audit", PersonProxy())
        with pytest.raises(ScenarioBuildError) as exc:
            registry.mark_finisher("proxy", "audit", -1)
        assert exc.value.code == 1038

    def test_restore_is_idempotent(self):
        registry = MockRegistry()
        calc = Calculator()
        registry.intercept("calc", "multiply", calc)

        assert registry.restore() == 1
        assert registry.restore() == 0
        with pytest.raises(RealCollaboratorCalled):
            calc.multiply(1, 2)
        assert "multiply" not in vars(calc)
