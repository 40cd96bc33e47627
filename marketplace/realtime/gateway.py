"""
WebSocket entry point.

A connection authenticates with its first frame, joins its role and personal
topics, then sends `{"event", "data"}` frames that run through the same
service routines as the HTTP API. Replies go to the calling socket only.
"""
import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as SchemaError

from marketplace.core.errors import MarketplaceError
from marketplace.core.security import resolve_actor
from marketplace.domain.actors import Actor
from marketplace.realtime.hub import TopicHub, encode_frame, topics_for
from marketplace.realtime.notifier import OrderNotifier
from marketplace.schemas.realtime import (
    AuthFrame,
    ClientFrame,
    LocationRequestFrame,
    LocationUpdateFrame,
    StatusUpdateFrame,
)
from marketplace.services.location_service import get_partner_location, report_location
from marketplace.services.order_service import apply_transition

router = APIRouter()
log = logging.getLogger("marketplace.gateway")


async def _reply(websocket: WebSocket, event: str, payload: Dict[str, Any]) -> None:
    await websocket.send_text(encode_frame(event, payload))


async def _error(websocket: WebSocket, code: str, message: str) -> None:
    await _reply(websocket, "error", {"code": code, "message": message})


async def _authenticate(websocket: WebSocket) -> Actor:
    raw = await websocket.receive_text()
    frame = AuthFrame.model_validate(json.loads(raw))
    return await resolve_actor(frame.token)


async def handle_status_update(websocket: WebSocket, actor: Actor, data: Dict[str, Any], notifier: OrderNotifier) -> None:
    frame = StatusUpdateFrame.model_validate(data)
    order = await apply_transition(actor, frame.order_id, frame.status, notifier, note=frame.note)
    await _reply(websocket, "success", {"message": f"Order {order.order_number} updated to {frame.status}"})


async def handle_location_update(websocket: WebSocket, actor: Actor, data: Dict[str, Any], notifier: OrderNotifier) -> None:
    frame = LocationUpdateFrame.model_validate(data)
    await report_location(actor, frame.latitude, frame.longitude, notifier)
    await _reply(websocket, "success", {"message": "Location updated"})


async def handle_location_request(websocket: WebSocket, actor: Actor, data: Dict[str, Any], notifier: OrderNotifier) -> None:
    frame = LocationRequestFrame.model_validate(data)
    location = await get_partner_location(actor, frame.order_id)
    await _reply(
        websocket,
        "location:response",
        {
            "orderId": str(location.order_id),
            "location": {"latitude": location.latitude, "longitude": location.longitude},
            "updatedAt": location.updated_at.isoformat() if location.updated_at else None,
        },
    )


HANDLERS = {
    "order:status_update": handle_status_update,
    "location:update": handle_location_update,
    "location:request": handle_location_request,
}


async def _dispatch(websocket: WebSocket, actor: Actor, raw: str, notifier: OrderNotifier) -> None:
    try:
        frame = ClientFrame.model_validate(json.loads(raw))
    except (ValueError, SchemaError):
        await _error(websocket, "validation_error", "Malformed frame")
        return

    handler = HANDLERS.get(frame.event)
    if handler is None:
        await _error(websocket, "validation_error", f"Unknown event: {frame.event}")
        return

    try:
        await handler(websocket, actor, frame.data, notifier)
    except MarketplaceError as e:
        await _error(websocket, e.code, e.message)
    except SchemaError as e:
        await _error(websocket, "validation_error", str(e.errors()[0].get("msg", "Invalid input data")))
    except Exception:
        # The socket stays joined; only this request fails
        log.exception(f"Unhandled error processing {frame.event} for {actor.role.value} {actor.id}")
        await _error(websocket, "server_error", f"Failed to process {frame.event}")


@router.websocket("/ws")
async def socket_endpoint(websocket: WebSocket):
    await websocket.accept()
    hub: TopicHub = websocket.app.state.hub

    try:
        actor = await _authenticate(websocket)
    except WebSocketDisconnect:
        return
    except (MarketplaceError, SchemaError, ValueError) as e:
        reason = e.message if isinstance(e, MarketplaceError) else "Authentication required"
        log.info(f"Socket rejected before join: {reason}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=reason)
        return

    hub.join(websocket, topics_for(actor))
    notifier = OrderNotifier(hub)
    log.info(f"Socket connected for {actor.role.value} {actor.id}")
    await _reply(websocket, "connected", {"userId": str(actor.id), "role": actor.role.value})

    try:
        while True:
            raw = await websocket.receive_text()
            await _dispatch(websocket, actor, raw, notifier)
    except WebSocketDisconnect:
        log.info(f"Socket disconnected for {actor.role.value} {actor.id}")
    finally:
        hub.leave(websocket)
