from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pygame.math import Vector2

from ..config import Controls, SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, max_queued: int = 120):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.max_queued = max(1, max_queued)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.controls = Controls()
        self.target = Vector2(config.player.start_target)
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        # oldest snapshots fall off when nobody acknowledges
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=self.max_queued)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def advance(self) -> None:
        async with self._lock:
            self.world.step(self.tick, self.target, self.controls, frame_time=self.config.time_step)
            self.tick += 1
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()

    def set_pointer(self, x: float, y: float) -> None:
        self.target = Vector2(float(x), float(y))

    def toggle(self, name: str) -> Controls:
        self.controls = self.controls.toggled(name)
        return self.controls

    def update_controls(self, raw: dict[str, Any]) -> Controls:
        self.controls = self.controls.updated(raw)
        return self.controls

    async def acknowledge(self, tick: int) -> None:
        await self._drop_through(tick)

    async def _drop_through(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    async def handle_message(self, message: str) -> None:
        try:
            payload = json.loads(message)
        except json.JSONDecodeError:
            logger.warning("ignoring undecodable websocket message")
            return
        if not isinstance(payload, dict):
            logger.warning("ignoring non-object websocket message")
            return
        kind = payload.get("type")
        try:
            if kind == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await self.acknowledge(tick)
            elif kind == "pointer":
                self.set_pointer(payload["x"], payload["y"])
            elif kind == "toggle":
                self.toggle(str(payload.get("name")))
            elif kind == "controls":
                self.update_controls({k: v for k, v in payload.items() if k != "type"})
            else:
                logger.info("ignoring websocket message of type %r", kind)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("rejected %r message: %s", kind, exc)

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "player": snapshot.player,
                "agents": snapshot.agents,
                "scene": asdict(snapshot.scene),
                "pointer": asdict(snapshot.pointer),
                "controls": snapshot.controls,
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)
        if self._client_last_sent:
            # everything every connected client already has is no longer needed
            await self._drop_through(min(self._client_last_sent.values()))


app = FastAPI(title="Steering Behaviors Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.world.agents),
            "controls": controller.controls.to_dict(),
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/controls")
async def set_controls(payload: dict) -> JSONResponse:
    try:
        controls = controller.update_controls(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(controls.to_dict())


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    logger.info("client connected (%d total)", len(controller.clients))
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            await controller.handle_message(message)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)
        logger.info("client disconnected (%d remaining)", len(controller.clients))


__all__ = ["app", "controller"]
