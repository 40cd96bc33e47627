import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch
from uuid import uuid4

from marketplace.core.errors import Forbidden, InvalidState
from marketplace.domain.actors import Actor, Role
from marketplace.domain.state_machine import can_transition, can_view, check_transition, plan_transition
from marketplace.domain.status import OrderStatus, StatusKind, StatusVariant, is_terminal

CUSTOMER = Actor(id=uuid4(), role=Role.CUSTOMER)
RESTAURANT = Actor(id=uuid4(), role=Role.RESTAURANT)
RIDER = Actor(id=uuid4(), role=Role.DELIVERY)
ADMIN = Actor(id=uuid4(), role=Role.ADMIN)
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
NON_TERMINAL = [s for s in OrderStatus if not is_terminal(s)]


def make_order(status=OrderStatus.PLACED, rider=True, delivered_at=None):
    return SimpleNamespace(
        status=status,
        customer_id=CUSTOMER.id,
        restaurant_id=RESTAURANT.id,
        delivery_partner_id=RIDER.id if rider else None,
        delivered_at=delivered_at,
    )


class TestStatusVariant:
    def test_reason_variants_share_kind(self):
        assert StatusVariant.from_wire("cancelled_by_customer").kind == StatusKind.CANCELLED
        assert StatusVariant.from_wire("delayed_weather").kind == StatusKind.DELAYED
        assert StatusVariant.from_wire("delivery_failed_no_response").kind == StatusKind.DELIVERY_FAILED

    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_wire_mapping_is_lossless(self, status):
        assert StatusVariant.from_wire(status).to_wire() == status

    @pytest.mark.parametrize("status,terminal", [
        ("delivered", True),
        ("cancelled", True),
        ("cancelled_payment_failed", True),
        ("refund_issued", True),
        ("on_hold", False),
        ("delivery_failed_wrong_address", False),
        ("delayed", False),
    ])
    def test_terminal_statuses(self, status, terminal):
        assert is_terminal(status) is terminal

    def test_unknown_literal(self):
        with pytest.raises(ValueError):
            StatusVariant.from_wire("teleported")


class TestRolePermissions:
    @pytest.mark.parametrize("target", ["confirmed", "preparing", "ready"])
    def test_restaurant_kitchen_statuses(self, target):
        assert can_transition(RESTAURANT, make_order(OrderStatus.PLACED), target)

    @pytest.mark.parametrize("target", ["picked", "on_the_way", "delayed", "delivered"])
    def test_delivery_partner_statuses(self, target):
        assert can_transition(RIDER, make_order(OrderStatus.READY), target)

    @pytest.mark.parametrize("actor,target", [
        (RESTAURANT, "delivered"),
        (RESTAURANT, "cancelled"),
        (RIDER, "preparing"),
        (RIDER, "refund_issued"),
        (CUSTOMER, "confirmed"),
        (CUSTOMER, "delivered"),
    ])
    def test_role_cannot_request_target(self, actor, target):
        with pytest.raises(Forbidden):
            check_transition(actor, make_order(OrderStatus.PLACED), target)

    def test_stranger_is_forbidden(self):
        other_restaurant = Actor(id=uuid4(), role=Role.RESTAURANT)
        with pytest.raises(Forbidden):
            check_transition(other_restaurant, make_order(), OrderStatus.CONFIRMED)

    def test_unassigned_rider_is_forbidden(self):
        with pytest.raises(Forbidden):
            check_transition(RIDER, make_order(OrderStatus.READY, rider=False), OrderStatus.PICKED)

    @pytest.mark.parametrize("status", ["placed", "confirmed"])
    def test_customer_cancels_early(self, status):
        assert can_transition(CUSTOMER, make_order(status), OrderStatus.CANCELLED)

    @pytest.mark.parametrize("status", ["preparing", "ready", "picked", "on_the_way"])
    def test_customer_cannot_cancel_after_preparation(self, status):
        with pytest.raises(InvalidState):
            check_transition(CUSTOMER, make_order(status), OrderStatus.CANCELLED)

    @pytest.mark.parametrize("status", ["delivered", "cancelled", "refund_issued"])
    def test_non_admin_blocked_on_terminal(self, status):
        with pytest.raises(InvalidState):
            check_transition(RIDER, make_order(status), OrderStatus.ON_THE_WAY)

    @pytest.mark.parametrize("source", NON_TERMINAL)
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_admin_may_set_any_status(self, source, target):
        assert can_transition(ADMIN, make_order(source), target)

    def test_admin_terminal_override_is_configurable(self):
        order = make_order(OrderStatus.DELIVERED)
        assert can_transition(ADMIN, order, OrderStatus.REFUND_ISSUED)
        with patch("marketplace.domain.state_machine.config.ADMIN_CAN_REOPEN_TERMINAL", False):
            with pytest.raises(InvalidState):
                check_transition(ADMIN, order, OrderStatus.REFUND_ISSUED)


class TestVisibility:
    def test_parties_can_view(self):
        order = make_order()
        for actor in (CUSTOMER, RESTAURANT, RIDER, ADMIN):
            assert can_view(actor, order)

    def test_stranger_cannot_view(self):
        assert not can_view(Actor(id=uuid4(), role=Role.CUSTOMER), make_order())


class TestPlanTransition:
    def test_same_status_is_a_no_op(self):
        plan = plan_transition(RESTAURANT, make_order(OrderStatus.PREPARING), OrderStatus.PREPARING, NOW)
        assert plan.changed is False
        assert plan.updates == {}

    def test_delivered_sets_delivered_at_once(self):
        plan = plan_transition(RIDER, make_order(OrderStatus.ON_THE_WAY), OrderStatus.DELIVERED, NOW)
        assert plan.updates["delivered_at"] == NOW
        assert plan.updates["actual_delivery_time"] == NOW

        earlier = datetime(2024, 4, 30, tzinfo=timezone.utc)
        reopened = make_order(OrderStatus.ON_HOLD, delivered_at=earlier)
        plan = plan_transition(ADMIN, reopened, OrderStatus.DELIVERED, NOW)
        assert "delivered_at" not in plan.updates

    def test_cancellation_records_actor(self):
        plan = plan_transition(CUSTOMER, make_order(), OrderStatus.CANCELLED, NOW, note="Changed my mind")
        assert plan.updates["status"] == OrderStatus.CANCELLED
        assert plan.updates["cancellation_reason"] == "Changed my mind"
        assert plan.updates["cancellation_time"] == NOW
        assert plan.updates["cancelled_by_user_id"] == CUSTOMER.id
        assert plan.updates["cancelled_by_role"] == "customer"

    def test_reason_qualified_cancel_is_cancelled_family(self):
        plan = plan_transition(ADMIN, make_order(), OrderStatus.CANCELLED_PAYMENT_FAILED, NOW)
        assert plan.updates["cancelled_by_role"] == "admin"

    @pytest.mark.parametrize("source", [OrderStatus.CANCELLED, OrderStatus.CANCELLED_BY_CUSTOMER])
    def test_reopening_clears_cancellation(self, source):
        plan = plan_transition(ADMIN, make_order(source), OrderStatus.CONFIRMED, NOW)
        assert plan.updates["status"] == OrderStatus.CONFIRMED
        for column in ("cancellation_reason", "cancellation_time", "cancelled_by_user_id", "cancelled_by_role"):
            assert plan.updates[column] is None

    def test_leaving_other_statuses_keeps_cancellation_columns_untouched(self):
        plan = plan_transition(RESTAURANT, make_order(OrderStatus.PLACED), OrderStatus.CONFIRMED, NOW)
        assert "cancellation_time" not in plan.updates

    def test_rejected_plan_raises(self):
        with pytest.raises(Forbidden):
            plan_transition(RESTAURANT, make_order(), OrderStatus.DELIVERED, NOW)
