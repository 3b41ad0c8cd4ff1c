import asyncio
import json
import os
import secrets
import time
from collections import defaultdict, deque
from typing import Dict, Set, Optional, Tuple
from fastapi import WebSocket
from fastapi.websockets import WebSocketState
from pydantic import ValidationError as MessageValidationError
import logging
import psutil
from app.config import settings
from app.models.realtime import (
    MessageType, BaseMessage, JoinQuizMessage, LeaveQuizMessage,
    ConnectedMessage, JoinedMessage, LeftMessage, ErrorMessage, HeartbeatMessage,
    quiz_topic,
)

logger = logging.getLogger(__name__)


class TopicBroadcaster:
    """
    WebSocket fan-out keyed by topic.

    Clients connect once, then join one topic per quiz they are waiting on.
    Implements the NotificationChannel protocol through ``publish``.
    """

    def __init__(self):
        # Track active connections
        self.connections: Dict[str, WebSocket] = {}  # connection_id -> ws
        self.topics: Dict[str, Set[str]] = defaultdict(set)  # topic -> connection_ids
        self.memberships: Dict[str, Set[str]] = defaultdict(set)  # connection_id -> topics
        self.connection_ips: Dict[str, str] = {}  # connection_id -> ip

        # Connection limits and rate limiting
        self.MAX_CONNECTIONS_PER_IP = settings.max_connections_per_ip
        self.RATE_LIMIT_WINDOW = settings.rate_limit_window
        self.MAX_REQUESTS_PER_WINDOW = settings.max_requests_per_window
        self.HEARTBEAT_INTERVAL = settings.heartbeat_interval
        self.CLEANUP_INTERVAL = settings.cleanup_interval

        self.connection_attempts: Dict[str, deque] = defaultdict(deque)  # IP -> timestamps
        self.ip_connections: Dict[str, int] = defaultdict(int)  # IP -> connection count

        self.metrics = {
            'total_connections': 0,
            'messages_sent': 0,
            'broadcasts': 0,
            'errors': 0,
            'disconnections': 0,
        }

        # Background tasks, started with the application lifespan
        self.cleanup_task: Optional[asyncio.Task] = None
        self.heartbeat_task: Optional[asyncio.Task] = None

    def start_background_tasks(self):
        """Start background tasks"""
        self.stop_background_tasks()
        self.cleanup_task = asyncio.create_task(self.periodic_cleanup())
        self.heartbeat_task = asyncio.create_task(self.heartbeat_monitor())

    def stop_background_tasks(self):
        for task in (self.cleanup_task, self.heartbeat_task):
            if task:
                task.cancel()
        self.cleanup_task = None
        self.heartbeat_task = None

    async def periodic_cleanup(self):
        """Periodic cleanup of empty topics and stale rate-limit entries"""
        while True:
            try:
                await asyncio.sleep(self.CLEANUP_INTERVAL)
                self.cleanup_empty_topics()
                self.cleanup_rate_limits()
                self.log_metrics()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in periodic cleanup: {e}")

    async def heartbeat_monitor(self):
        """Monitor connection health with heartbeat"""
        while True:
            try:
                await asyncio.sleep(self.HEARTBEAT_INTERVAL)
                await self.send_heartbeats()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in heartbeat monitor: {e}")

    async def send_heartbeats(self):
        """Send heartbeat messages to all active connections and drop the dead ones"""
        heartbeat_message = HeartbeatMessage().model_dump_json()
        dead = []

        for connection_id, websocket in list(self.connections.items()):
            try:
                await websocket.send_text(heartbeat_message)
            except Exception as e:
                logger.warning(f"Heartbeat failed for connection {connection_id}: {e}")
                dead.append(connection_id)

        for connection_id in dead:
            await self.disconnect(connection_id)

    def cleanup_empty_topics(self):
        for topic in [t for t, members in self.topics.items() if not members]:
            del self.topics[topic]

    def cleanup_rate_limits(self):
        """Clean up old rate limit entries"""
        cutoff_time = time.time() - self.RATE_LIMIT_WINDOW

        for ip, timestamps in list(self.connection_attempts.items()):
            while timestamps and timestamps[0] < cutoff_time:
                timestamps.popleft()
            if not timestamps:
                del self.connection_attempts[ip]

    def log_metrics(self):
        logger.info(f"Broadcaster metrics: Connections={len(self.connections)}, "
                    f"Topics={len(self.topics)}, Messages={self.metrics['messages_sent']}, "
                    f"Errors={self.metrics['errors']}")

    def get_health_status(self) -> dict:
        """Get current broadcaster health status"""
        process = psutil.Process(os.getpid())
        memory_mb = process.memory_info().rss / 1024 / 1024

        return {
            "status": "healthy" if memory_mb < 1000 else "warning",
            "active_connections": len(self.connections),
            "active_topics": len([t for t, members in self.topics.items() if members]),
            "memory_usage_mb": round(memory_mb, 2),
            "metrics": dict(self.metrics),
            "limits": {
                "max_connections_per_ip": self.MAX_CONNECTIONS_PER_IP,
                "rate_limit_window": self.RATE_LIMIT_WINDOW,
                "max_requests_per_window": self.MAX_REQUESTS_PER_WINDOW,
            }
        }

    def get_stats(self) -> dict:
        return {
            "total_connections": len(self.connections),
            "topics": {topic: len(members) for topic, members in self.topics.items() if members},
        }

    def check_rate_limit(self, client_ip: str) -> bool:
        """Check if client IP is within rate limits"""
        current_time = time.time()
        cutoff_time = current_time - self.RATE_LIMIT_WINDOW

        timestamps = self.connection_attempts[client_ip]
        while timestamps and timestamps[0] < cutoff_time:
            timestamps.popleft()

        if len(timestamps) >= self.MAX_REQUESTS_PER_WINDOW:
            return False

        timestamps.append(current_time)
        return True

    def check_connection_limits(self, client_ip: Optional[str]) -> Tuple[bool, str]:
        if client_ip and self.ip_connections[client_ip] >= self.MAX_CONNECTIONS_PER_IP:
            return False, "Too many connections from your IP address"
        return True, ""

    async def connect(self, websocket: WebSocket, client_ip: Optional[str] = None) -> Optional[str]:
        """Accept a connection and return its id, or None if it was refused"""
        if client_ip:
            if not self.check_rate_limit(client_ip):
                await websocket.close(code=1008, reason="Rate limit exceeded")
                self.metrics['errors'] += 1
                return None

            can_connect, error_msg = self.check_connection_limits(client_ip)
            if not can_connect:
                await websocket.close(code=1008, reason=error_msg)
                self.metrics['errors'] += 1
                return None

        await websocket.accept()

        connection_id = secrets.token_hex(8)
        while connection_id in self.connections:
            connection_id = secrets.token_hex(8)

        self.connections[connection_id] = websocket
        self.metrics['total_connections'] += 1
        if client_ip:
            self.connection_ips[connection_id] = client_ip
            self.ip_connections[client_ip] += 1

        await self.send(connection_id, ConnectedMessage(connection_id=connection_id))
        logger.info(f"Connection {connection_id} opened")
        return connection_id

    async def disconnect(self, connection_id: str):
        """Forget a connection and all of its topic memberships"""
        self.connections.pop(connection_id, None)
        for topic in self.memberships.pop(connection_id, set()):
            self.topics[topic].discard(connection_id)

        client_ip = self.connection_ips.pop(connection_id, None)
        if client_ip:
            self.ip_connections[client_ip] = max(0, self.ip_connections[client_ip] - 1)

        self.metrics['disconnections'] += 1
        logger.info(f"Connection {connection_id} closed")

    def join(self, connection_id: str, topic: str):
        self.topics[topic].add(connection_id)
        self.memberships[connection_id].add(topic)

    def leave(self, connection_id: str, topic: str):
        self.topics[topic].discard(connection_id)
        self.memberships[connection_id].discard(topic)

    async def handle_message(self, connection_id: str, raw: str):
        """Dispatch one client message"""
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            await self.send(connection_id, ErrorMessage(message="Invalid message format"))
            return

        message_type = message.get("type") if isinstance(message, dict) else None
        try:
            if message_type == MessageType.JOIN_QUIZ:
                join = JoinQuizMessage(**message)
                self.join(connection_id, quiz_topic(join.quiz_id))
                await self.send(connection_id, JoinedMessage(quiz_id=join.quiz_id))
                logger.info(f"Connection {connection_id} joined quiz {join.quiz_id}")
            elif message_type == MessageType.LEAVE_QUIZ:
                leave = LeaveQuizMessage(**message)
                self.leave(connection_id, quiz_topic(leave.quiz_id))
                await self.send(connection_id, LeftMessage(quiz_id=leave.quiz_id))
            elif message_type == MessageType.HEARTBEAT:
                return
            else:
                logger.warning(f"Unknown message type from {connection_id}: {message_type}")
                await self.send(connection_id, ErrorMessage(message=f"Unknown message type: {message_type}"))
        except MessageValidationError:
            await self.send(connection_id, ErrorMessage(message="Invalid message format"))

    async def send(self, connection_id: str, message: BaseMessage) -> bool:
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return False
        return await self._send_with_retry(websocket, message.model_dump_json(), connection_id, retries=0)

    async def publish(self, topic: str, message: BaseMessage, retries: int = 1) -> int:
        """Broadcast message to every connection in topic; return successful sends"""
        members = list(self.topics.get(topic, ()))
        if not members:
            logger.info(f"No subscribers on {topic} for {message.type.value}")
            return 0

        message_json = message.model_dump_json()
        tasks = []
        for connection_id in members:
            websocket = self.connections.get(connection_id)
            if websocket is None:
                continue
            task = asyncio.create_task(
                self._send_with_retry(websocket, message_json, connection_id, retries)
            )
            tasks.append((connection_id, task))

        successful_sends = 0
        failed = []
        for connection_id, task in tasks:
            if await task:
                successful_sends += 1
            else:
                failed.append(connection_id)

        # Clean up failed connections
        for connection_id in failed:
            await self.disconnect(connection_id)

        self.metrics['broadcasts'] += 1
        self.metrics['messages_sent'] += successful_sends
        logger.info(f"Broadcast {message.type.value} on {topic} reached {successful_sends}/{len(tasks)} connections")
        return successful_sends

    async def _send_with_retry(self, websocket: WebSocket, message_json: str, connection_id: str, retries: int) -> bool:
        for attempt in range(retries + 1):
            try:
                await websocket.send_text(message_json)
                return True
            except Exception as e:
                if attempt == retries:
                    logger.error(f"Failed to send to {connection_id} after {retries + 1} attempts: {e}")
                    self.metrics['errors'] += 1
                    return False
                await asyncio.sleep(0.05 * (attempt + 1))
        return False

    async def close_all(self):
        """Close every open connection (shutdown)"""
        for connection_id, websocket in list(self.connections.items()):
            try:
                if websocket.client_state != WebSocketState.DISCONNECTED:
                    await websocket.close(code=1001, reason="Server shutting down")
            except Exception as e:
                logger.warning(f"Error closing connection {connection_id}: {e}")
            await self.disconnect(connection_id)

# Global broadcaster instance
broadcaster = TopicBroadcaster()
