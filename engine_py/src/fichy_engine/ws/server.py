"""
FastAPI WebSocket server for the Fichy game.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional, Set

import orjson
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..config import GameConfig, load_config_from_env
from ..emitter import Emitter
from ..engine import RoundEngine
from ..errors import GameError, NotHost
from ..events import (
    CreateRoomEvent, ErrorCode, InboundEvent, JoinRoomEvent, NextRoundEvent, OutboundEvent,
    StartGameEvent, SubmitAnswerEvent, SubmitBetsEvent, create_error_event,
    parse_inbound_event, serialize_event
)
from ..models import RoomState
from ..questions import AnthropicQuestionSource, QuestionSource
from ..registry import RoomRegistry

logger = logging.getLogger(__name__)


class ConnectionManager(Emitter):
    """Manages WebSocket connections and their outgoing queues."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.outboxes: Dict[str, asyncio.Queue] = {}
        self.writers: Dict[str, asyncio.Task] = {}
        self.background: Set[asyncio.Task] = set()

    def run_in_background(self, coro) -> asyncio.Task:
        """Run a coroutine off the receive loop, holding a reference until it finishes."""
        task = asyncio.create_task(coro)
        self.background.add(task)
        task.add_done_callback(self.background.discard)
        return task

    def cancel_background(self):
        for task in list(self.background):
            task.cancel()

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a socket and give it a fresh connection id."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        queue: asyncio.Queue = asyncio.Queue()
        self.active_connections[connection_id] = websocket
        self.outboxes[connection_id] = queue
        self.writers[connection_id] = asyncio.create_task(self._writer(connection_id, websocket, queue))
        logger.info(f"Connection {connection_id} opened")
        return connection_id

    async def disconnect(self, connection_id: str):
        self.active_connections.pop(connection_id, None)
        self.outboxes.pop(connection_id, None)
        writer = self.writers.pop(connection_id, None)
        if writer is not None:
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass
        logger.info(f"Connection {connection_id} closed")

    def send(self, player_id: str, event: OutboundEvent):
        queue = self.outboxes.get(player_id)
        if queue is not None:
            queue.put_nowait(serialize_event(event))

    def broadcast(self, room: RoomState, event: OutboundEvent):
        message = serialize_event(event)
        for player_id in room.players:
            queue = self.outboxes.get(player_id)
            if queue is not None:
                queue.put_nowait(message)

    async def _writer(self, connection_id: str, websocket: WebSocket, queue: asyncio.Queue):
        while True:
            message = await queue.get()
            try:
                await websocket.send_text(message)
            except Exception as e:
                logger.error(f"Error sending to {connection_id}: {e}")
                return


async def handle_event(engine: RoundEngine, connection_id: str, event: InboundEvent):
    """Route an inbound event to the engine."""

    if isinstance(event, CreateRoomEvent):
        engine.create_room(connection_id, event.player_name)
    elif isinstance(event, JoinRoomEvent):
        engine.join_room(event.code, connection_id, event.player_name)
    elif isinstance(event, StartGameEvent):
        await engine.start_game(event.code, connection_id)
    elif isinstance(event, SubmitAnswerEvent):
        engine.submit_answer(event.code, connection_id, event.answer)
    elif isinstance(event, SubmitBetsEvent):
        engine.submit_bets(event.code, connection_id, event.bets)
    elif isinstance(event, NextRoundEvent):
        await engine.next_round(event.code, connection_id)
    else:
        raise ValueError(f"Unhandled event type: {type(event)}")


async def dispatch(engine: RoundEngine, manager: ConnectionManager, connection_id: str, raw_data: str):
    """Parse one text frame and run it, answering errors to the sender only."""
    try:
        event = parse_inbound_event(orjson.loads(raw_data))
    except ValueError as e:
        manager.send(connection_id, create_error_event(ErrorCode.INVALID_EVENT, str(e)))
        return

    if isinstance(event, (StartGameEvent, NextRoundEvent)):
        # These wait on question generation; keep reading the socket meanwhile
        manager.run_in_background(run_event(engine, manager, connection_id, event))
    else:
        await run_event(engine, manager, connection_id, event)


async def run_event(engine: RoundEngine, manager: ConnectionManager, connection_id: str, event: InboundEvent):
    """Handle a parsed event, answering game errors to the sender only."""
    try:
        await handle_event(engine, connection_id, event)
    except NotHost as e:
        logger.debug(f"Dropped {event.type.value} from {connection_id}: {e.message}")
    except GameError as e:
        try:
            code = ErrorCode(e.code)
        except ValueError:
            code = ErrorCode.INTERNAL
        manager.send(connection_id, create_error_event(code, e.message))
    except Exception as e:
        logger.exception(f"Error handling {event.type.value} from {connection_id}: {e}")
        manager.send(connection_id, create_error_event(ErrorCode.INTERNAL, "Internal server error"))


async def reap_idle_rooms(registry: RoomRegistry, config: GameConfig):
    """Periodically drop rooms nobody came back to."""
    while True:
        await asyncio.sleep(config.reap_interval)
        reaped = registry.reap_idle(config.room_timeout)
        if reaped:
            logger.info(f"Reaped {len(reaped)} idle rooms, {len(registry)} left")


def create_app(
    config: Optional[GameConfig] = None,
    question_source: Optional[QuestionSource] = None
) -> FastAPI:
    """Build the application with its own registry, engine and connections."""
    config = config or load_config_from_env()
    manager = ConnectionManager()
    registry = RoomRegistry(config)
    engine = RoundEngine(
        registry,
        question_source or AnthropicQuestionSource.from_env(),
        manager,
        config
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        reaper = asyncio.create_task(reap_idle_rooms(registry, config))
        yield
        reaper.cancel()
        manager.cancel_background()
        registry.close()

    app = FastAPI(title="Fichy Game Engine", version="1.0.0", lifespan=lifespan)
    app.state.engine = engine
    app.state.registry = registry
    app.state.connections = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"status": "Fichy server running"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "rooms": len(registry),
            "connections": len(manager.active_connections)
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Main WebSocket endpoint."""
        connection_id = await manager.connect(websocket)
        try:
            while True:
                raw_data = await websocket.receive_text()
                await dispatch(engine, manager, connection_id, raw_data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket {connection_id} disconnected")
        except Exception as e:
            logger.error(f"WebSocket error on {connection_id}: {e}")
        finally:
            engine.disconnect(connection_id)
            await manager.disconnect(connection_id)

    return app
