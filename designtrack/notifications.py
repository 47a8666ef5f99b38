import asyncio
import json
from typing import Dict, Set, Any
import logging

from .sessions import ProjectSession
from .timing import format_clock
from .utils.datetime_utils import get_current_time

logger = logging.getLogger(__name__)

DASHBOARD_ROOM = "dashboard"

def format_event(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data)}\n\n"

class SSEManager:
    def __init__(self):
        # Store active connections by room
        self.connections: Dict[str, Set[asyncio.Queue]] = {}

    async def add_connection(self, room: str, queue: asyncio.Queue):
        """Add a connection to a room"""
        if room not in self.connections:
            self.connections[room] = set()
        self.connections[room].add(queue)
        logger.info(f"Added connection to room {room}. Total connections: {len(self.connections[room])}")

    async def remove_connection(self, room: str, queue: asyncio.Queue):
        """Remove a connection from a room"""
        if room in self.connections:
            self.connections[room].discard(queue)
            if not self.connections[room]:
                del self.connections[room]
            logger.info(f"Removed connection from room {room}. Remaining connections: {len(self.connections.get(room, []))}")

    async def broadcast_to_room(self, room: str, data: Dict[str, Any]):
        """Broadcast data to all connections in a room"""
        if room not in self.connections:
            logger.debug(f"No connections found for room {room}")
            return

        message_str = format_event({
            "timestamp": get_current_time().isoformat(),
            **data
        })

        for queue in self.connections[room].copy():
            await queue.put(message_str)

        logger.info(f"Broadcasted {data.get('type')} to room {room}: {len(self.connections[room])} active connections")

# Global SSE manager instance
sse_manager = SSEManager()

def completion_summary(session: ProjectSession) -> Dict[str, Any]:
    return {
        "session_id": session.id,
        "ns": session.ns,
        "client_name": session.client_name or "-",
        "project_type": session.type.value,
        "variations": len(session.variations),
        "duration": format_clock(session.total_active_seconds),
    }

async def notify_completion(session: ProjectSession):
    """Fire-and-forget announcement of a finished session."""
    summary = completion_summary(session)
    logger.info(f"Session completed: NS {summary['ns']} in {summary['duration']}")
    await sse_manager.broadcast_to_room(DASHBOARD_ROOM, {
        "type": "session_completed",
        **summary
    })
