"""
WebSocket endpoint for interactive address search.

/ws/address-search - one search orchestrator per connection

Client -> server:
    {"type": "query", "text": "..."}                       text changed
    {"type": "cancel"}                                     search cleared
    {"type": "location", "latitude": .., "longitude": ..}  device moved
    {"type": "ping"} / {"type": "pong"}

Server -> client:
    connected          - connection accepted
    search_started     - a pass began (show busy indicator)
    search_complete    - finished pass: query, rate_limited, sections, buckets
    location_updated   - location accepted
    error              - bad message (connection stays open)
    ping / pong

Outgoing messages go through one queue so they reach the client in the
order the orchestrator produced them.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from typing import Set
import json
import logging
import asyncio

from schemas_address_search import LocationUpdate
from services.address_search.orchestrator import (
    SearchOrchestrator, SearchSink, create_search_orchestrator,
)
from services.address_search.presentation import build_search_payload
from services.address_search.region import LocationProvider

logger = logging.getLogger(__name__)

router = APIRouter()

_connections: Set[WebSocket] = set()
_connections_lock = asyncio.Lock()

# Server-side ping interval (seconds) - keep under common proxy idle timeouts
SERVER_PING_INTERVAL = 30


class WebSocketSearchSink(SearchSink):
    """Forwards orchestrator notifications to the connection's send queue."""

    def __init__(self, queue: "asyncio.Queue[dict]"):
        self.queue = queue

    def on_search_started(self, query):
        self.queue.put_nowait({"type": "search_started", "query": query})

    def on_search_complete(self, query, results, rate_limited):
        message = {"type": "search_complete"}
        message.update(build_search_payload(query, results, rate_limited))
        self.queue.put_nowait(message)


# =============================================================================
# Connection management
# =============================================================================

async def _add_connection(websocket: WebSocket):
    async with _connections_lock:
        _connections.add(websocket)
        logger.info(f"WebSocket /ws/address-search connected (total: {len(_connections)})")


async def _remove_connection(websocket: WebSocket):
    async with _connections_lock:
        _connections.discard(websocket)
        logger.info(f"WebSocket /ws/address-search disconnected (total: {len(_connections)})")


# =============================================================================
# Loops
# =============================================================================

async def _send_loop(websocket: WebSocket, queue: "asyncio.Queue[dict]", stop_event: asyncio.Event):
    """Deliver queued messages in order"""
    try:
        while not stop_event.is_set():
            message = await queue.get()
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send to /ws/address-search WebSocket: {e}")
                break
    except asyncio.CancelledError:
        pass


async def _server_ping_loop(queue: "asyncio.Queue[dict]", stop_event: asyncio.Event):
    """Queue periodic pings to keep the connection alive through proxies"""
    try:
        while not stop_event.is_set():
            await asyncio.sleep(SERVER_PING_INTERVAL)
            if stop_event.is_set():
                break
            queue.put_nowait({"type": "ping"})
    except asyncio.CancelledError:
        pass


def handle_message(
    message: dict,
    orchestrator: SearchOrchestrator,
    queue: "asyncio.Queue[dict]",
):
    """Apply one client message. Unknown or malformed messages produce an error reply."""
    msg_type = message.get("type") if isinstance(message, dict) else None

    if msg_type == "query":
        text = message.get("text")
        if not isinstance(text, str):
            queue.put_nowait({"type": "error", "message": "query text must be a string"})
            return
        orchestrator.submit(text)
    elif msg_type == "cancel":
        orchestrator.submit("")
    elif msg_type == "location":
        try:
            location = LocationUpdate.model_validate(message)
            coordinate = orchestrator.location_provider.update(location.latitude, location.longitude)
        except ValidationError as e:
            queue.put_nowait({"type": "error", "message": f"invalid location: {e.error_count()} error(s)"})
            return
        except ValueError as e:
            queue.put_nowait({"type": "error", "message": f"invalid location: {e}"})
            return
        queue.put_nowait({
            "type": "location_updated",
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
        })
    elif msg_type == "ping":
        queue.put_nowait({"type": "pong"})
    elif msg_type == "pong":
        # Client responded to our ping - connection is alive
        pass
    else:
        queue.put_nowait({"type": "error", "message": f"unknown message type: {msg_type}"})


async def _receive_loop(
    websocket: WebSocket,
    orchestrator: SearchOrchestrator,
    queue: "asyncio.Queue[dict]",
    stop_event: asyncio.Event,
):
    """Handle incoming messages from client"""
    try:
        while not stop_event.is_set():
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON received: {e}")
                queue.put_nowait({"type": "error", "message": "invalid JSON"})
                continue
            handle_message(message, orchestrator, queue)
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"WebSocket receive error: {e}")


# =============================================================================
# Endpoint
# =============================================================================

@router.websocket("/ws/address-search")
async def websocket_address_search(websocket: WebSocket):
    """
    Interactive address search. Each keystroke is submitted; the orchestrator
    keeps at most one pass in flight and only the latest pending text runs next.
    """
    await websocket.accept()
    await _add_connection(websocket)

    queue: "asyncio.Queue[dict]" = asyncio.Queue()
    orchestrator = create_search_orchestrator(
        WebSocketSearchSink(queue), location_provider=LocationProvider()
    )
    queue.put_nowait({
        "type": "connected",
        "postal_variants": list(orchestrator.postal_variants),
    })

    stop_event = asyncio.Event()

    send_task = asyncio.create_task(_send_loop(websocket, queue, stop_event))
    ping_task = asyncio.create_task(_server_ping_loop(queue, stop_event))
    receive_task = asyncio.create_task(_receive_loop(websocket, orchestrator, queue, stop_event))

    try:
        # Wait for any task to complete (indicates disconnect)
        done, pending = await asyncio.wait(
            [send_task, ping_task, receive_task],
            return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        stop_event.set()
        send_task.cancel()
        ping_task.cancel()
        receive_task.cancel()
        await _remove_connection(websocket)
