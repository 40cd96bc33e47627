import pytest
from datetime import datetime, timezone
from decimal import Decimal
from fastapi.testclient import TestClient
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock
from uuid import uuid4

from marketplace.core.errors import AccountBlocked, Forbidden, InvalidState, NotFound
from marketplace.core.security import get_current_actor
from marketplace.domain.actors import Actor, Role
from marketplace.domain.pickup_machine import ItemCategory, PickupStatus
from marketplace.domain.status import OrderStatus
from marketplace.main import app
from marketplace.models.notification import NotificationType
from marketplace.services.location_service import PartnerLocation

from conftest import ADDRESS

CUSTOMER = Actor(id=uuid4(), role=Role.CUSTOMER)
RESTAURANT = Actor(id=uuid4(), role=Role.RESTAURANT)


def fake_order(**overrides):
    data = dict(
        id=uuid4(),
        order_number="ORD-240501-1234",
        status=OrderStatus.PLACED,
        customer_id=CUSTOMER.id,
        restaurant_id=RESTAURANT.id,
        delivery_partner_id=None,
        subtotal=Decimal("347.00"),
        delivery_fee=Decimal("40.00"),
        tax_amount=Decimal("17.35"),
        discount=Decimal("0.00"),
        final_amount=Decimal("404.35"),
        applied_offer_code=None,
        payment_method="cash",
        payment_status="pending",
        delivery_address=ADDRESS,
        delivery_instructions=None,
        items=[],
        cancellation_reason=None,
        cancellation_time=None,
        cancelled_by_user_id=None,
        cancelled_by_role=None,
        rating_food=None,
        rating_delivery=None,
        review=None,
        rated_at=None,
        delivered_at=None,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        fetch_related=AsyncMock(),
    )
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def as_actor():
    def _set(actor):
        app.dependency_overrides[get_current_actor] = lambda: actor
    yield _set
    app.dependency_overrides.clear()


class TestAuthentication:
    def test_missing_token_is_401(self, client):
        response = client.get(f"/api/v1/orders/{uuid4()}")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_blocked_account_is_403(self, client):
        with patch('marketplace.core.security.resolve_actor', AsyncMock(side_effect=AccountBlocked("Your account is blocked"))):
            response = client.get(f"/api/v1/orders/{uuid4()}", headers={"Authorization": "Bearer abc"})
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Your account is blocked"


class TestOrderRoutes:
    def test_create_order_success(self, client, as_actor):
        """Test order creation returns 201 with the priced order"""
        as_actor(CUSTOMER)
        with patch('marketplace.api.v1.orders.place_order', new_callable=AsyncMock) as mock_place_order:
            mock_place_order.return_value = fake_order()

            order_data = {
                "items": [{"product_id": str(uuid4()), "quantity": 2}],
                "delivery_address": ADDRESS,
                "payment_method": "cod",
            }

            response = client.post("/api/v1/orders/", json=order_data)
            assert response.status_code == 201
            body = response.json()
            assert body["success"] is True
            assert body["data"]["status"] == "placed"
            assert body["data"]["final_amount"] == "404.35"
            assert mock_place_order.call_args.kwargs["payment_method"] == "cod"

    def test_create_order_bad_quantity(self, client, as_actor):
        """Test validation for malformed items"""
        as_actor(CUSTOMER)
        order_data = {
            "items": [{"product_id": str(uuid4()), "quantity": 0}],
            "delivery_address": ADDRESS,
            "payment_method": "cash",
        }

        response = client.post("/api/v1/orders/", json=order_data)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    def test_get_order_success(self, client, as_actor):
        """Test order retrieval"""
        as_actor(CUSTOMER)
        item = SimpleNamespace(product_ref=uuid4(), name="Paneer Wrap", quantity=2,
                               unit_price=Decimal("149.00"), line_total=Decimal("298.00"))
        with patch('marketplace.api.v1.orders.get_order', new_callable=AsyncMock) as mock_get_order:
            mock_get_order.return_value = fake_order(items=[item])

            response = client.get(f"/api/v1/orders/{uuid4()}")
            assert response.status_code == 200
            assert response.json()["data"]["items"][0]["name"] == "Paneer Wrap"

    def test_get_order_not_found(self, client, as_actor):
        as_actor(CUSTOMER)
        with patch('marketplace.api.v1.orders.get_order', AsyncMock(side_effect=NotFound("Order not found"))):
            response = client.get(f"/api/v1/orders/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_update_status_success(self, client, as_actor):
        as_actor(RESTAURANT)
        order_id = uuid4()
        with patch('marketplace.api.v1.orders.apply_transition', new_callable=AsyncMock) as mock_apply:
            mock_apply.return_value = fake_order(id=order_id, status=OrderStatus.PREPARING)

            response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "preparing", "note": "Firing"})
            assert response.status_code == 200
            assert response.json()["data"]["status"] == "preparing"
            args = mock_apply.call_args
            assert args.args[:3] == (RESTAURANT, order_id, OrderStatus.PREPARING)
            assert args.kwargs["note"] == "Firing"

    @pytest.mark.parametrize("error,status_code,code", [
        (Forbidden("Role 'restaurant' cannot set status 'delivered'"), 403, "forbidden"),
        (InvalidState("Order is already in a final state: delivered"), 403, "invalid_state"),
        (NotFound("Order not found"), 404, "not_found"),
    ])
    def test_update_status_rejections(self, client, as_actor, error, status_code, code):
        as_actor(RESTAURANT)
        with patch('marketplace.api.v1.orders.apply_transition', AsyncMock(side_effect=error)):
            response = client.patch(f"/api/v1/orders/{uuid4()}/status", json={"status": "delivered"})
        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code

    def test_update_status_passes_app_labels_through(self, client, as_actor):
        rider = Actor(id=uuid4(), role=Role.DELIVERY)
        as_actor(rider)
        with patch('marketplace.api.v1.orders.apply_transition', new_callable=AsyncMock) as mock_apply:
            mock_apply.return_value = fake_order(status=OrderStatus.PICKED, delivery_partner_id=rider.id)
            response = client.patch(f"/api/v1/orders/{uuid4()}/status", json={"status": "Picked Up"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "picked"
        assert mock_apply.call_args.args[2] == "Picked Up"

    def test_update_status_malformed_value(self, client, as_actor):
        as_actor(RESTAURANT)
        response = client.patch(f"/api/v1/orders/{uuid4()}/status", json={"status": "teleported"})
        assert response.status_code == 400

    def test_cancel_without_body(self, client, as_actor):
        as_actor(CUSTOMER)
        with patch('marketplace.api.v1.orders.cancel_order', new_callable=AsyncMock) as mock_cancel:
            mock_cancel.return_value = fake_order(status=OrderStatus.CANCELLED)
            response = client.post(f"/api/v1/orders/{uuid4()}/cancel")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"
        assert mock_cancel.call_args.kwargs["reason"] is None

    def test_track_order(self, client, as_actor):
        as_actor(CUSTOMER)
        order = fake_order(status=OrderStatus.CONFIRMED)
        timeline = [
            SimpleNamespace(status=OrderStatus.PLACED, timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc), note=None),
            SimpleNamespace(status=OrderStatus.CONFIRMED, timestamp=datetime(2024, 5, 1, 12, 5, tzinfo=timezone.utc), note="ok"),
        ]
        with patch('marketplace.api.v1.orders.track_order', AsyncMock(return_value=(order, timeline))):
            response = client.get(f"/api/v1/orders/{order.id}/track")
        assert response.status_code == 200
        assert [e["status"] for e in response.json()["data"]["timeline"]] == ["placed", "confirmed"]

    def test_rate_order_score_out_of_range(self, client, as_actor):
        as_actor(CUSTOMER)
        response = client.post(f"/api/v1/orders/{uuid4()}/rate", json={"food": 0, "delivery": 5})
        assert response.status_code == 400

    def test_delivery_location(self, client, as_actor):
        as_actor(CUSTOMER)
        order_id = uuid4()
        location = PartnerLocation(order_id=order_id, latitude=12.9, longitude=77.6)
        with patch('marketplace.api.v1.orders.get_partner_location', AsyncMock(return_value=location)):
            response = client.get(f"/api/v1/orders/{order_id}/delivery-location")
        assert response.status_code == 200
        assert response.json()["data"]["latitude"] == 12.9

    def test_unexpected_failure_is_500(self, client, as_actor):
        as_actor(CUSTOMER)
        with patch('marketplace.api.v1.orders.list_orders', AsyncMock(side_effect=RuntimeError("db down"))):
            response = client.get("/api/v1/orders/")
        assert response.status_code == 500
        assert response.json()["success"] is False


class TestPickupAndLocationRoutes:
    def test_book_pickup(self, client, as_actor):
        as_actor(CUSTOMER)
        pickup = SimpleNamespace(
            id=uuid4(),
            customer_id=CUSTOMER.id,
            delivery_partner_id=None,
            pickup_address="Office",
            drop_address="Home",
            item_category=ItemCategory.DOCUMENTS,
            note=None,
            status=PickupStatus.PENDING,
            status_note=None,
            cancel_reason=None,
            total_amount=Decimal("0.00"),
            created_at=None,
        )
        with patch('marketplace.api.v1.pickups.book_pickup', AsyncMock(return_value=pickup)):
            response = client.post("/api/v1/pickups/", json={
                "pickup_address": "Office", "drop_address": "Home", "item_category": "documents",
            })
        assert response.status_code == 201
        assert response.json()["data"]["status"] == "pending"

    def test_report_location(self, client, as_actor):
        as_actor(Actor(id=uuid4(), role=Role.DELIVERY))
        with patch('marketplace.api.v1.locations.report_location', AsyncMock(return_value=2)):
            response = client.put("/api/v1/me/location", json={"latitude": 12.9, "longitude": 77.6})
        assert response.status_code == 200
        assert response.json()["data"]["orders_notified"] == 2


class TestNotificationRoutes:
    def _notification(self, **overrides):
        data = dict(
            id=uuid4(),
            message="You have received a new order (Order ORD-240501-1234)",
            type=NotificationType.ORDER,
            order_id=uuid4(),
            pickup_id=None,
            read=False,
            created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
        data.update(overrides)
        return SimpleNamespace(**data)

    def test_list_unread(self, client, as_actor):
        as_actor(RESTAURANT)
        with patch('marketplace.api.v1.notifications.list_notifications', new_callable=AsyncMock) as mock_list:
            mock_list.return_value = [self._notification()]
            response = client.get("/api/v1/me/notifications?unread=true")
        assert response.status_code == 200
        assert response.json()["data"][0]["type"] == "order"
        assert mock_list.call_args.kwargs["unread_only"] is True

    def test_mark_read(self, client, as_actor):
        as_actor(RESTAURANT)
        notification = self._notification(read=True)
        with patch('marketplace.api.v1.notifications.mark_read', AsyncMock(return_value=notification)) as mock_read:
            response = client.patch(f"/api/v1/me/notifications/{notification.id}/read")
        assert response.status_code == 200
        assert response.json()["data"]["read"] is True
        assert mock_read.call_args.args == (RESTAURANT, notification.id)

    def test_mark_read_unknown_is_404(self, client, as_actor):
        as_actor(RESTAURANT)
        with patch('marketplace.api.v1.notifications.mark_read', AsyncMock(side_effect=NotFound("Notification not found"))):
            response = client.patch(f"/api/v1/me/notifications/{uuid4()}/read")
        assert response.status_code == 404

    def test_mark_all_read(self, client, as_actor):
        as_actor(RESTAURANT)
        with patch('marketplace.api.v1.notifications.mark_all_read', AsyncMock(return_value=3)):
            response = client.patch("/api/v1/me/notifications/read-all")
        assert response.status_code == 200
        assert response.json()["data"] == {"updated": 3}
