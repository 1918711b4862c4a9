from typing import Any, Dict, Iterable, Optional, Set
import asyncio
import json
import logging
import uuid

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

# seconds between attempts to resubscribe after a Redis failure
RESUBSCRIBE_DELAY = 5


class Connection:
    """One authenticated socket and the rooms it has joined."""

    def __init__(self, websocket, user_id: str):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self.rooms: Set[str] = set()

    async def send(self, event: str, data: Any = None, **extra) -> None:
        frame = {"event": event, "data": data}
        frame.update(extra)
        await self.websocket.send_json(frame)

    def __repr__(self) -> str:
        return f"<Connection {self.id} user={self.user_id} rooms={len(self.rooms)}>"


class ConnectionManager:
    """Process-local room table.

    Every user id and every conversation id is a room. Broadcasts are also
    published to Redis when configured so other instances can deliver them to
    their own room members.
    """

    def __init__(self):
        # user_id -> set of Connection
        self.active_connections: Dict[str, Set[Connection]] = {}
        # room id -> set of Connection
        self.rooms: Dict[str, Set[Connection]] = {}
        self.instance_id = uuid.uuid4().hex
        self.redis: Optional[Any] = None
        self.channel = "chat:events"
        self._listener: Optional[asyncio.Task] = None
        # True while the Redis subscription is live
        self.listening = False
        self._lock = asyncio.Lock()

    async def connect(self, connection: Connection) -> None:
        async with self._lock:
            self.active_connections.setdefault(connection.user_id, set()).add(connection)

    async def disconnect(self, connection: Connection) -> bool:
        """Forget a connection. Returns True when its user has no connection left here."""
        async with self._lock:
            self._forget(connection)
            return not self.active_connections.get(connection.user_id)

    def _forget(self, connection: Connection) -> None:
        for room in list(connection.rooms):
            self._leave(connection, room)
        conns = self.active_connections.get(connection.user_id)
        if conns is not None:
            conns.discard(connection)
            if len(conns) == 0:
                self.active_connections.pop(connection.user_id, None)

    async def join(self, connection: Connection, room: str) -> None:
        async with self._lock:
            self.rooms.setdefault(room, set()).add(connection)
            connection.rooms.add(room)

    async def leave(self, connection: Connection, room: str) -> None:
        async with self._lock:
            self._leave(connection, room)

    def _leave(self, connection: Connection, room: str) -> None:
        connection.rooms.discard(room)
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection)
        if len(members) == 0:
            self.rooms.pop(room, None)

    def room_members(self, room: str) -> Set[Connection]:
        return set(self.rooms.get(room, ()))

    def all_connections(self) -> Set[Connection]:
        out = set()
        for conns in self.active_connections.values():
            out.update(conns)
        return out

    async def _deliver(self, targets: Iterable[Connection], event: str, data: Any, exclude: Optional[str] = None) -> int:
        delivered = 0
        dead = []
        for conn in targets:
            if conn.id == exclude:
                continue
            try:
                await conn.send(event, data)
                delivered += 1
            except Exception:
                logger.warning(f"Dropping connection {conn.id} after failed send of {event}")
                dead.append(conn)
        if dead:
            async with self._lock:
                for conn in dead:
                    self._forget(conn)
        return delivered

    async def broadcast(self, room: str, event: str, data: Any, exclude: Optional[str] = None) -> int:
        """Send an event to every connection in a room. Returns local deliveries."""
        delivered = await self._deliver(self.room_members(room), event, data, exclude)
        await self.publish({"room": room, "event": event, "data": data, "exclude": exclude})
        return delivered

    async def broadcast_all(self, event: str, data: Any, exclude: Optional[str] = None) -> int:
        delivered = await self._deliver(self.all_connections(), event, data, exclude)
        await self.publish({"room": None, "event": event, "data": data, "exclude": exclude})
        return delivered

    async def publish(self, message: dict) -> None:
        """Publish message to Redis channel if configured."""
        if not self.redis:
            return
        message = dict(message, origin=self.instance_id)
        try:
            await self.redis.publish(self.channel, json.dumps(message, default=str))
        except Exception:
            logger.exception("Failed to publish to redis")

    async def handle_remote(self, message: dict) -> int:
        """Deliver a broadcast published by another instance to local members."""
        if message.get("origin") == self.instance_id:
            return 0
        event = message.get("event")
        if not event:
            return 0
        room = message.get("room")
        targets = self.room_members(room) if room else self.all_connections()
        return await self._deliver(targets, event, message.get("data"), message.get("exclude"))

    async def start_redis(self, redis_url: str, channel: str) -> None:
        if self.redis is not None:
            # Already initialized
            return
        self.channel = channel
        try:
            self.redis = aioredis.from_url(redis_url)
            self._listener = asyncio.create_task(_redis_listener(self, self.redis, channel))
            logger.info(f"Redis initialized: {redis_url}")
        except Exception:
            logger.exception("Failed to initialize Redis client")
            self.redis = None

    async def stop_redis(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Redis listener had already failed")
            self._listener = None
        self.listening = False
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None


async def _redis_listener(manager: ConnectionManager, redis_client, channel_name: str):
    """Deliver remote broadcasts until cancelled, resubscribing after connection errors."""
    while True:
        pubsub = redis_client.pubsub()
        try:
            await pubsub.subscribe(channel_name)
            manager.listening = True
            async for item in pubsub.listen():
                if item is None:
                    continue
                if item['type'] == 'message':
                    try:
                        await manager.handle_remote(json.loads(item['data']))
                    except Exception:
                        logger.exception('Error processing pubsub message')
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f'Redis subscription lost, retrying in {RESUBSCRIBE_DELAY}s')
        finally:
            manager.listening = False
            try:
                await pubsub.aclose()
            except Exception:
                logger.debug('Could not close pubsub cleanly')
        await asyncio.sleep(RESUBSCRIBE_DELAY)


manager = ConnectionManager()
