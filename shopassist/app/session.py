#!/usr/bin/env python3
"""
Session management module for the shopping assistant.

Stores each session's append-only message history and its last-known product
context in Redis, falling back to process memory when Redis is unreachable.
"""

import json
import redis
from typing import Dict, List, Any, Optional
from datetime import datetime
from .config import Config
from ..utils.logger import get_logger

logger = get_logger()


class SessionManager:
    """Manages user sessions and conversation context."""

    def __init__(self, use_redis: bool = True):
        """Initialize the session manager with Redis connection or fallback to in-memory."""
        self.use_redis = use_redis
        self.memory_sessions: Dict[str, Dict[str, Any]] = {}  # Fallback in-memory storage
        self.redis_client = None

        if not use_redis:
            return
        try:
            self.redis_client = redis.Redis(
                host=Config.REDIS_HOST,
                port=Config.REDIS_PORT,
                db=Config.REDIS_DB,
                decode_responses=True,
                socket_connect_timeout=1,
            )
            # Test Redis connection
            self.redis_client.ping()
            logger.info("[SESSION] using Redis for session storage")
        except redis.RedisError as e:
            logger.info(f"[SESSION] Redis not available ({e}), using in-memory session storage")
            self.use_redis = False
            self.redis_client = None

    def _get_session_key(self, session_id: str) -> str:
        return f"session:{session_id}"

    def _new_session(self) -> Dict[str, Any]:
        now = datetime.now().isoformat()
        return {
            "messages": [],
            "product_id": None,
            "created_at": now,
            "last_updated": now,
        }

    def _save(self, session_id: str, session_data: Dict[str, Any]) -> None:
        session_data["last_updated"] = datetime.now().isoformat()
        if self.use_redis:
            self.redis_client.set(self._get_session_key(session_id), json.dumps(session_data))
        else:
            self.memory_sessions[session_id] = session_data

    def create_session(self, session_id: str) -> bool:
        """
        Create a new session.

        Returns:
            True if session was created, False if it already exists
        """
        if self.get_session(session_id) is not None:
            return False
        self._save(session_id, self._new_session())
        return True

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        if self.use_redis:
            session_data = self.redis_client.get(self._get_session_key(session_id))
            if session_data:
                return json.loads(session_data)
            return None
        return self.memory_sessions.get(session_id)

    def _get_or_create(self, session_id: str) -> Dict[str, Any]:
        session_data = self.get_session(session_id)
        if session_data is None:
            session_data = self._new_session()
        return session_data

    def add_message(self, session_id: str, role: str, content: str) -> None:
        """Append a message to the session conversation history."""
        if role not in ("user", "assistant"):
            raise ValueError(f"Unknown message role: {role!r}")
        session_data = self._get_or_create(session_id)
        session_data["messages"].append({
            "role": role,
            "content": content,
            "timestamp": datetime.now().isoformat(),
        })
        self._save(session_id, session_data)

    def get_messages(self, session_id: str) -> List[Dict[str, str]]:
        session_data = self.get_session(session_id)
        if not session_data:
            return []
        return [{"role": m["role"], "content": m["content"]} for m in session_data.get("messages", [])]

    def last_user_message(self, session_id: str) -> Optional[str]:
        for m in reversed(self.get_messages(session_id)):
            if m["role"] == "user":
                return m["content"]
        return None

    def set_product_context(self, session_id: str, product_id: Optional[str]) -> None:
        session_data = self._get_or_create(session_id)
        session_data["product_id"] = product_id
        self._save(session_id, session_data)

    def get_product_context(self, session_id: str) -> Optional[str]:
        session_data = self.get_session(session_id)
        return session_data.get("product_id") if session_data else None

    def clear_session(self, session_id: str) -> bool:
        if self.use_redis:
            return bool(self.redis_client.delete(self._get_session_key(session_id)))
        return self.memory_sessions.pop(session_id, None) is not None
