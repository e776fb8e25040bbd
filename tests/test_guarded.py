"""Tests for guarded operations."""

from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from propguard import (
    GLOBAL_SCOPE,
    AnyOf,
    AuthorizationDenied,
    Capability,
    ConfigurationError,
    GuardedApi,
    PermissionEvaluator,
    Subject,
    guarded,
    guarded_bookings,
    guarded_expenses,
    guarded_payments,
    guarded_properties,
    guarded_tenants,
    infer_capability,
    require_permission,
)
from propguard.permissions import Action, Module


def _evaluator(permissions: dict, role: str = "pg_staff") -> PermissionEvaluator:
    return PermissionEvaluator(Subject(id="u1", role=role, permissions=permissions))


class CountingApi:
    """Fake API layer that records every invocation."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, name: str, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        return {"op": name, "args": args}

    def get_rooms(self, *args, **kwargs):
        return self._record("get_rooms", *args, **kwargs)

    def create_room(self, *args, **kwargs):
        return self._record("create_room", *args, **kwargs)

    def delete_room(self, *args, **kwargs):
        return self._record("delete_room", *args, **kwargs)

    def helper(self):
        return "not an operation"


class TestInferCapability:
    """Tests for name-convention mapping."""

    @pytest.mark.parametrize(
        "name,module,action",
        [
            ("get_buildings", Module.BUILDINGS, Action.VIEW),
            ("get_building", Module.BUILDINGS, Action.VIEW),
            ("list_bookings", Module.BOOKINGS, Action.VIEW),
            ("create_room", Module.ROOMS, Action.ADD),
            ("update_floor", Module.FLOORS, Action.EDIT),
            ("patch_building", Module.BUILDINGS, Action.EDIT),
            ("delete_bed", Module.BEDS, Action.DELETE),
            ("get_bed_history", Module.BEDS, Action.VIEW),
            ("get_payments_any", Module.PAYMENTS, Action.VIEW),
            ("create_invoice", Module.INVOICES, Action.ADD),
        ],
    )
    def test_mapping(self, name: str, module: Module, action: Action) -> None:
        assert infer_capability(name) == Capability(module, action)

    @pytest.mark.parametrize("name", ["open_invoice", "get_parking", "refresh", "create_"])
    def test_unmapped_raises(self, name: str) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            infer_capability(name)
        assert exc_info.value.code == "CONFIGURATION_ERROR"


class TestCapability:
    """Tests for Capability / AnyOf."""

    def test_of_validates(self) -> None:
        assert Capability.of("rooms", "add") == Capability(Module.ROOMS, Action.ADD)
        with pytest.raises(ConfigurationError):
            Capability.of("parking", "add")

    def test_str(self) -> None:
        assert str(Capability(Module.ROOMS, Action.ADD)) == "rooms:add"

    def test_any_of(self) -> None:
        requirement = AnyOf(Capability.of("payments", "view"), Capability.of("bookings", "view"))
        evaluator = _evaluator({"4": {"bookings": {"view": True}}})
        assert requirement.allowed(evaluator, "4") is True
        assert requirement.allowed(evaluator, "5") is False
        assert requirement.primary == Capability(Module.PAYMENTS, Action.VIEW)

    def test_any_of_requires_capability(self) -> None:
        with pytest.raises(ConfigurationError):
            AnyOf()


class TestRequirePermission:
    """Tests for require_permission."""

    def test_allowed_returns_none(self) -> None:
        evaluator = _evaluator({"7": {"rooms": {"edit": True}}})
        assert require_permission(evaluator, "rooms", "edit", "7") is None

    def test_denied_raises_with_meta(self) -> None:
        evaluator = _evaluator({"7": {"rooms": {"edit": True}}})
        with pytest.raises(AuthorizationDenied) as exc_info:
            require_permission(evaluator, Module.ROOMS, Action.EDIT, 8, operation="update_room")
        error = exc_info.value
        assert error.meta == {"module": "rooms", "action": "edit", "scope": "8"}
        assert error.operation == "update_room"
        assert error.status == 403

    def test_unknown_scope_raises(self) -> None:
        evaluator = _evaluator({"global": {"rooms": {"edit": True}}})
        with pytest.raises(AuthorizationDenied) as exc_info:
            require_permission(evaluator, "rooms", "edit", None, operation="update_room")
        assert exc_info.value.scope is None


class TestGuardedApi:
    """Tests for the guarded wrapper."""

    def test_denied_call_never_reaches_operation(self) -> None:
        api = CountingApi()
        rooms = guarded(_evaluator({"7": {"rooms": {"view": True}}}), "7", api)

        with pytest.raises(AuthorizationDenied) as exc_info:
            rooms.create_room({"number": "101"})

        assert api.calls == []
        assert (exc_info.value.module, exc_info.value.action, exc_info.value.scope) == ("rooms", "add", "7")
        assert exc_info.value.operation == "create_room"

    def test_allowed_call_passes_through(self) -> None:
        api = CountingApi()
        rooms = guarded(_evaluator({"7": {"rooms": {"view": True, "add": True}}}), 7, api)

        result = rooms.create_room({"number": "101"}, notify=False)

        assert result == {"op": "create_room", "args": ({"number": "101"},)}
        assert api.calls == [("create_room", ({"number": "101"},), {"notify": False})]

    def test_scope_fixed_at_wrap_time(self) -> None:
        """A grant in another building does not help."""
        api = CountingApi()
        rooms = guarded(_evaluator({"8": {"rooms": {"delete": True}}}), "7", api)
        with pytest.raises(AuthorizationDenied):
            rooms.delete_room(1)
        assert rooms.scope == "7"
        assert api.calls == []

    def test_discovers_conventional_operations(self) -> None:
        rooms = guarded(_evaluator({}), "7", CountingApi())
        assert set(rooms.operations) == {"get_rooms", "create_room", "delete_room"}
        assert "helper" not in rooms
        with pytest.raises(AttributeError):
            rooms.helper

    def test_explicit_missing_operation_fails_at_construction(self) -> None:
        with pytest.raises(ConfigurationError):
            guarded(_evaluator({}), "7", CountingApi(), operations=["update_room"])

    def test_unmapped_operation_fails_at_construction(self) -> None:
        api = {"open_invoice": MagicMock()}
        with pytest.raises(ConfigurationError):
            guarded(_evaluator({}), "7", api, operations=["open_invoice"])

    def test_override_requirement(self) -> None:
        api = {"open_invoice": MagicMock(return_value="opened")}
        invoices = guarded(
            _evaluator({"2": {"invoices": {"edit": True}}}),
            "2",
            api,
            overrides={"open_invoice": Capability(Module.INVOICES, Action.EDIT)},
        )
        assert invoices.open_invoice(9) == "opened"
        api["open_invoice"].assert_called_once_with(9)

    def test_unresolved_evaluator_denies(self) -> None:
        api = CountingApi()
        rooms = guarded(PermissionEvaluator(None), "7", api)
        with pytest.raises(AuthorizationDenied):
            rooms.get_rooms()
        assert api.calls == []

    def test_unknown_scope_denies_despite_global_grant(self) -> None:
        """A guarded mutation with no building never runs on a global grant."""
        api = {"update_room": MagicMock(return_value="updated")}
        rooms = guarded(_evaluator({"global": {"rooms": {"edit": True}}}), None, api)

        with pytest.raises(AuthorizationDenied) as exc_info:
            rooms.update_room(5, {"number": "102"})

        assert api["update_room"].call_count == 0
        assert rooms.scope is None
        assert exc_info.value.meta == {"module": "rooms", "action": "edit", "scope": None}
        assert rooms.allows("update_room") is False

    def test_blank_scope_denies(self) -> None:
        api = CountingApi()
        rooms = guarded(_evaluator({"global": {"rooms": {"view": True}}}), "  ", api)
        with pytest.raises(AuthorizationDenied):
            rooms.get_rooms()
        assert api.calls == []

    def test_unknown_scope_bypass_role(self) -> None:
        api = CountingApi()
        rooms = guarded(_evaluator({}, role="pg_admin"), None, api)
        rooms.delete_room(3)
        assert len(api.calls) == 1

    def test_bypass_role(self) -> None:
        api = CountingApi()
        rooms = guarded(_evaluator({}, role="pg_admin"), "global", api)
        rooms.delete_room(3)
        assert len(api.calls) == 1

    def test_operation_errors_pass_through(self) -> None:
        api = {"get_rooms": MagicMock(side_effect=ConnectionError("offline"))}
        rooms = guarded(_evaluator({"7": {"rooms": {"view": True}}}), "7", api)
        with pytest.raises(ConnectionError):
            rooms.get_rooms()

    def test_denial_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        rooms = guarded(_evaluator({}), "7", CountingApi())
        with caplog.at_level(logging.WARNING, logger="propguard.guarded"):
            with pytest.raises(AuthorizationDenied):
                rooms.create_room({})
        assert any("DENIED" in r.getMessage() and "create_room" in r.getMessage() for r in caplog.records)

    def test_allows(self) -> None:
        rooms = guarded(_evaluator({"7": {"rooms": {"view": True}}}), "7", CountingApi())
        assert rooms.allows("get_rooms") is True
        assert rooms.allows("create_room") is False
        assert isinstance(rooms, GuardedApi)


class TestAsyncOperations:
    """Async operations are checked before a coroutine exists."""

    def test_denied_async_raises_synchronously(self) -> None:
        create_room = AsyncMock(return_value={"id": 1})
        rooms = guarded(_evaluator({}), "7", {"create_room": create_room})

        with pytest.raises(AuthorizationDenied):
            rooms.create_room({"number": "101"})

        create_room.assert_not_called()

    @pytest.mark.asyncio
    async def test_allowed_async_returns_result(self) -> None:
        create_room = AsyncMock(return_value={"id": 1})
        rooms = guarded(_evaluator({"7": {"rooms": {"add": True}}}), "7", {"create_room": create_room})

        result = await rooms.create_room({"number": "101"})

        assert result == {"id": 1}
        create_room.assert_awaited_once_with({"number": "101"})


class TestApiGroups:
    """Tests for the predefined console API groups."""

    def test_properties(self) -> None:
        api = SimpleNamespace(
            get_buildings=MagicMock(),
            create_floor=MagicMock(),
            update_bed=MagicMock(),
            get_bed_history=MagicMock(),
        )
        props = guarded_properties(_evaluator({}), "1", api)
        assert set(props.operations) == {"get_buildings", "create_floor", "update_bed", "get_bed_history"}
        assert props.requirement_for("get_bed_history") == Capability(Module.BEDS, Action.VIEW)
        assert props.requirement_for("create_floor") == Capability(Module.FLOORS, Action.ADD)

    def test_tenants_history_and_stays(self) -> None:
        api = {
            "list_bed_history": MagicMock(return_value=[]),
            "list_stays": MagicMock(),
            "create_stay": MagicMock(),
            "patch_stay": MagicMock(),
        }
        evaluator = _evaluator({"3": {"tenants": {"view": True}}, "4": {"beds": {"view": True}}})
        tenants = guarded_tenants(evaluator, "3", api)
        assert tenants.list_bed_history(5) == []
        assert tenants.requirement_for("create_stay") == Capability(Module.TENANTS, Action.ADD)
        assert tenants.requirement_for("patch_stay") == Capability(Module.TENANTS, Action.EDIT)

        with pytest.raises(AuthorizationDenied):
            guarded_tenants(evaluator, "4", api).list_bed_history(5)

    def test_payments_any_of(self) -> None:
        api = {
            "get_payments": MagicMock(),
            "get_payments_merged": MagicMock(return_value=["p"]),
            "open_invoice": MagicMock(),
        }
        payments = guarded_payments(_evaluator({"6": {"bookings": {"view": True}}}), "6", api)

        assert payments.get_payments_merged() == ["p"]
        with pytest.raises(AuthorizationDenied) as exc_info:
            payments.get_payments()
        assert exc_info.value.module == "payments"
        assert payments.requirement_for("open_invoice") == Capability(Module.INVOICES, Action.EDIT)

    def test_payments_any_of_reports_first(self) -> None:
        api = {"get_payments_any": MagicMock()}
        payments = guarded_payments(_evaluator({}), "6", api)
        with pytest.raises(AuthorizationDenied) as exc_info:
            payments.get_payments_any()
        assert exc_info.value.meta == {"module": "payments", "action": "view", "scope": "6"}
        api["get_payments_any"].assert_not_called()

    def test_bookings_and_expenses(self) -> None:
        evaluator = _evaluator({"global": {"bookings": {"view": True}, "expenses": {"delete": True}}})
        bookings = guarded_bookings(evaluator, GLOBAL_SCOPE, {"list_bookings": MagicMock(return_value=[1])})
        expenses = guarded_expenses(
            evaluator, "global", {"delete_expense": MagicMock(return_value=True), "list_expense_categories": MagicMock()}
        )
        assert bookings.list_bookings() == [1]
        assert expenses.delete_expense(4) is True
        assert expenses.requirement_for("list_expense_categories") == Capability(Module.EXPENSES, Action.VIEW)

    def test_group_without_operations(self) -> None:
        with pytest.raises(ConfigurationError):
            guarded_bookings(_evaluator({}), "1", {"unrelated": MagicMock()})
