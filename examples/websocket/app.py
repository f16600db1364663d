"""WebSocket chat — rooms with join, leave, and broadcast.

Connect to ``/ws/<room>?username=<name>`` and send JSON objects like
``{"content": "hi"}``. Every member of the room receives
``{"type": "message", ...}`` plus join and leave notices.

Run with the builtin server so raw-socket upgrades work too:
    cd examples/websocket && python app.py
"""

import json
import logging
from collections import defaultdict
from datetime import UTC, datetime

from smallapi import App, AppConfig, WebSocket
from smallapi.errors import ConnectionClosed

log = logging.getLogger("smallapi.examples.chat")

app = App(AppConfig(server="builtin"))

rooms: dict[str, set[WebSocket]] = defaultdict(set)


def _message(kind: str, username: str, room: str, content: str = "") -> dict[str, str]:
    return {
        "type": kind,
        "username": username,
        "room": room,
        "content": content,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def broadcast(room: str, message: dict[str, str]) -> None:
    for member in list(rooms[room]):
        try:
            await member.send_json(message)
        except ConnectionClosed:
            rooms[room].discard(member)


@app.get("/ws/:room")
async def chat(ctx):
    room = ctx.param("room")
    username = ctx.query("username", "anonymous")

    async def session(ws: WebSocket) -> None:
        rooms[room].add(ws)
        log.info("%s joined %s", username, room)
        await broadcast(room, _message("join", username, room, f"{username} joined"))
        try:
            async for raw in ws:
                try:
                    content = _decode(raw).get("content", "")
                except ValueError:
                    await ws.send_json(_message("error", "server", room, "invalid message"))
                    continue
                await broadcast(room, _message("message", username, room, content))
        finally:
            rooms[room].discard(ws)
            log.info("%s left %s", username, room)
            await broadcast(room, _message("leave", username, room, f"{username} left"))

    await ctx.upgrade(session)


def _decode(raw: str | bytes) -> dict[str, str]:
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        msg = "expected an object"
        raise ValueError(msg)
    return payload


@app.get("/rooms")
def list_rooms(ctx):
    ctx.json({name: len(members) for name, members in rooms.items() if members})


if __name__ == "__main__":
    app.run()
