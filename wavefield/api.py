"""FastAPI service streaming the wave surface and accepting input commands."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.websockets import WebSocketState

from .config import DEFAULT_CONFIG, WaveConfig, load_config
from .mesh import build_faces, build_vertices, pointer_to_cell
from .particle import parse_behavior
from .presets import get_preset, list_presets
from .simulation import Simulation

logger = logging.getLogger(__name__)

# ============================================================================
# Pydantic Models
# ============================================================================

class ConfigUpdate(BaseModel):
    """Update configuration parameters."""
    width: Optional[int] = Field(default=None, ge=3, le=1000)
    height: Optional[int] = Field(default=None, ge=3, le=1000)
    brush_radius: Optional[int] = Field(default=None, ge=0)
    damping: Optional[float] = Field(default=None, gt=0.0, lt=1.0)
    sustainability: Optional[float] = Field(default=None, gt=0.0)
    oscillator_speed: Optional[float] = Field(default=None, gt=0.0)
    workers: Optional[int] = Field(default=None, ge=1, le=64)
    preset: Optional[str] = None


class PointerEvent(BaseModel):
    """Raw pointer position inside the rendering viewport."""
    x: float
    y: float
    viewport_width: float = Field(gt=0.0)
    viewport_height: float = Field(gt=0.0)


class CellCommand(BaseModel):
    """Grid coordinate addressed directly."""
    x: int
    y: int


class BoundaryUpdate(BaseModel):
    kind: Literal["fluid", "infinity"]


# ============================================================================
# FastAPI App with Lifespan
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global _simulation_task
    logger.info("Starting background simulation task")
    _simulation_task = asyncio.create_task(_simulation_loop())

    yield

    logger.info("Cancelling background simulation task")
    if _simulation_task:
        _simulation_task.cancel()
        try:
            await _simulation_task
        except asyncio.CancelledError:
            pass
    _simulation.close()

app = FastAPI(title="Wavefield", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _initial_config() -> WaveConfig:
    path = os.environ.get("WAVEFIELD_CONFIG")
    return load_config(path) if path else DEFAULT_CONFIG


# Global state
_config = _initial_config()
_simulation = Simulation(_config)
_state_lock = asyncio.Lock()
_websocket_clients: set = set()
_simulation_task = None


# ============================================================================
# Background Simulation Task
# ============================================================================

async def _simulation_loop():
    """Background task that steps simulation and broadcasts to all clients."""
    while True:
        async with _state_lock:
            # step in a worker thread so socket traffic keeps flowing
            await asyncio.to_thread(_simulation.step)
            state = _simulation.get_state()
            if _simulation.generation % 100 == 0:
                logger.debug(
                    f"Generation {_simulation.generation}, clients={len(_websocket_clients)}"
                )

        # Broadcast to all connected clients (outside lock)
        message = {"type": "state", "payload": state}
        dead_clients = set()
        for client in _websocket_clients:
            try:
                if client.client_state == WebSocketState.CONNECTED:
                    await client.send_json(message)
                else:
                    dead_clients.add(client)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning(f"Dropping client after send failure: {type(e).__name__}: {e}")
                dead_clients.add(client)

        if dead_clients:
            logger.info(f"Removing {len(dead_clients)} dead clients")
        _websocket_clients.difference_update(dead_clients)

        await asyncio.sleep(_simulation.config.frame_interval)


# ============================================================================
# Helper Functions
# ============================================================================

def _config_payload() -> Dict[str, Any]:
    config = _simulation.config.as_dict()
    config["brush_height"] = _simulation.config.brush_height
    return {"config": config, "preset": _simulation.preset.name}


def _replace_simulation(config: WaveConfig) -> None:
    global _config, _simulation
    old = _simulation
    _simulation = Simulation(config)
    _config = config
    old.close()


# ============================================================================
# REST Endpoints
# ============================================================================

@app.get("/health")
async def health() -> Dict[str, str]:
    """Health check."""
    return {"status": "ok"}


@app.get("/config")
async def get_config() -> Dict[str, Any]:
    async with _state_lock:
        return _config_payload()


@app.post("/config")
async def update_config(config_update: ConfigUpdate) -> Dict[str, Any]:
    """Update configuration and restart simulation."""
    async with _state_lock:
        changes = config_update.model_dump(exclude_none=True)
        try:
            new_config = _config.updated(**changes)
            if new_config.preset != _config.preset:
                get_preset(new_config.preset)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        _replace_simulation(new_config)
        return _config_payload()


@app.get("/mesh")
async def get_mesh() -> Dict[str, Any]:
    """Static topology plus current vertex positions."""
    async with _state_lock:
        return {
            "width": _simulation.config.width,
            "height": _simulation.config.height,
            "vertices": build_vertices(_simulation.grid).tolist(),
            "faces": build_faces(_simulation.config).tolist(),
        }


@app.get("/state")
async def get_state() -> Dict[str, Any]:
    async with _state_lock:
        return _simulation.get_state()


@app.post("/brush")
async def brush(event: PointerEvent) -> Dict[str, Any]:
    """Primary pointer action: raise a square of water."""
    async with _state_lock:
        x, y = _apply_brush(event)
        return {"x": x, "y": y}


@app.post("/oscillator")
async def oscillator(event: PointerEvent) -> Dict[str, Any]:
    """Secondary pointer action: place an oscillator."""
    async with _state_lock:
        x, y = _apply_oscillator(event)
        return {"x": x, "y": y}


@app.post("/solid")
async def solid(command: CellCommand) -> Dict[str, Any]:
    async with _state_lock:
        try:
            _simulation.set_solid(command.x, command.y)
        except IndexError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"x": command.x, "y": command.y}


@app.post("/boundary")
async def set_boundary(update: BoundaryUpdate) -> Dict[str, str]:
    async with _state_lock:
        _simulation.set_boundary(parse_behavior(update.kind))
        return {"boundary": update.kind}


@app.post("/boundary/toggle")
async def toggle_boundary() -> Dict[str, str]:
    async with _state_lock:
        kind = _simulation.toggle_boundary()
        return {"boundary": type(kind).__name__.lower()}


@app.post("/oscillators/reset")
async def reset_oscillators() -> Dict[str, str]:
    async with _state_lock:
        _simulation.reset_oscillators()
        return {"status": "oscillators reset"}


@app.post("/reset")
async def reset_simulation() -> Dict[str, str]:
    """Reset simulation to initial state."""
    async with _state_lock:
        _simulation.reset()
        return {"status": "reset"}


@app.get("/presets")
async def get_presets() -> List[Dict[str, Any]]:
    """List available presets."""
    return [{"name": p.name, "description": p.description} for p in list_presets()]


@app.post("/presets/{name}")
async def apply_preset(name: str) -> Dict[str, Any]:
    """Restart the simulation from a named initial condition."""
    async with _state_lock:
        try:
            get_preset(name)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))
        _replace_simulation(_config.updated(preset=name))
        return _config_payload()


def _apply_brush(event: PointerEvent):
    config = _simulation.config
    x, y = pointer_to_cell(event.x, event.y, event.viewport_width, event.viewport_height, config)
    _simulation.apply_brush(x, y, config.brush_radius, config.brush_height)
    return x, y


def _apply_oscillator(event: PointerEvent):
    config = _simulation.config
    x, y = pointer_to_cell(event.x, event.y, event.viewport_width, event.viewport_height, config)
    _simulation.set_oscillator(x, y)
    return x, y


# ============================================================================
# WebSocket
# ============================================================================

async def _listener(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """
    Listen for client messages.

    Frames that are not valid JSON are queued as ``ValueError`` so the
    endpoint can answer with an error; ``None`` marks the end of the session.
    """
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError, TypeError) as e:
                # json.JSONDecodeError is a ValueError
                await queue.put(ValueError(f"Malformed frame: {e}"))
                continue
            await queue.put(message)
    except WebSocketDisconnect:
        await queue.put(None)
    except Exception:
        logger.exception("WebSocket listener failed")
        await queue.put(None)


def _pointer_from(message: Dict[str, Any]) -> PointerEvent:
    pointer = message.get("pointer")
    if not isinstance(pointer, dict):
        raise ValueError("Message missing 'pointer' object")
    return PointerEvent(**pointer)


def _handle_message(message: Any) -> None:
    """Handle client commands."""
    if not isinstance(message, dict):
        raise ValueError("Message must be a JSON object")
    msg_type = message.get("type")

    if msg_type == "brush":
        _apply_brush(_pointer_from(message))

    elif msg_type == "oscillator":
        _apply_oscillator(_pointer_from(message))

    elif msg_type == "solid":
        if "x" not in message or "y" not in message:
            raise ValueError("Message missing 'x' or 'y'")
        _simulation.set_solid(int(message["x"]), int(message["y"]))

    elif msg_type == "boundary":
        kind = message.get("kind")
        if kind is None:
            raise ValueError("Message missing 'kind'")
        _simulation.set_boundary(parse_behavior(kind))

    elif msg_type == "toggle_boundary":
        _simulation.toggle_boundary()

    elif msg_type == "reset_oscillators":
        _simulation.reset_oscillators()

    elif msg_type == "reset":
        _simulation.reset()

    else:
        raise ValueError(f"Unknown message type '{msg_type}'")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint - clients subscribe to simulation updates."""
    await websocket.accept()
    async with _state_lock:
        state = _simulation.get_state()
    await websocket.send_json({"type": "state", "payload": state})
    _websocket_clients.add(websocket)
    logger.info(f"Client connected, total clients: {len(_websocket_clients)}")

    queue: asyncio.Queue = asyncio.Queue()
    listener = asyncio.create_task(_listener(websocket, queue))

    try:
        while True:
            message = await queue.get()
            if message is None:
                break
            if isinstance(message, Exception):
                await websocket.send_json({"type": "error", "detail": str(message)})
                continue
            try:
                async with _state_lock:
                    _handle_message(message)
                    state = _simulation.get_state()
            except (ValueError, IndexError) as exc:
                # pydantic's ValidationError is a ValueError
                await websocket.send_json({"type": "error", "detail": str(exc)})
                continue
            await websocket.send_json({"type": "state", "payload": state})
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    finally:
        _websocket_clients.discard(websocket)
        if listener.done() and not listener.cancelled() and listener.exception():
            logger.error(f"Listener ended with {listener.exception()!r}")
        listener.cancel()
        logger.info(f"Client removed, remaining clients: {len(_websocket_clients)}")
