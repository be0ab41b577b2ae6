import re
import time
import uuid
from datetime import datetime
from typing import Callable

MAX_AGE_DAYS = 3
MAX_MESSAGES = 50
_VALID_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


def _validate_id(conv_id: str) -> bool:
    return bool(conv_id) and bool(_VALID_ID_PATTERN.match(conv_id))


def _title(text: str) -> str:
    title = text.strip()[:60]
    if len(text.strip()) > 60:
        title += "..."
    return title


class ConversationStore:
    """
    Per-session conversation state held in process memory.
    Sessions are created explicitly and evicted on delete or once they have
    been idle longer than `max_age_seconds`.
    """

    def __init__(self, max_age_seconds: float = MAX_AGE_DAYS * 86400,
                 max_messages: int = MAX_MESSAGES,
                 clock: Callable[[], float] = time.time):
        self.max_age_seconds = max_age_seconds
        self.max_messages = max_messages
        self._clock = clock
        self._conversations: dict[str, dict] = {}
        self._touched: dict[str, float] = {}

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self._clock()).isoformat()

    def _touch(self, conv_id: str):
        self._touched[conv_id] = self._clock()
        self._conversations[conv_id]["updated_at"] = self._now_iso()

    def create(self, session_id: str | None = None) -> dict:
        self.cleanup_old()
        conv_id = session_id or str(uuid.uuid4())[:12]
        if not _validate_id(conv_id):
            raise ValueError(f"Invalid conversation id: {conv_id!r}")
        now = self._now_iso()
        conversation = {
            "id": conv_id,
            "title": "New conversation",
            "created_at": now,
            "updated_at": now,
            "messages": [],
            "last_symbol": None,
        }
        self._conversations[conv_id] = conversation
        self._touched[conv_id] = self._clock()
        return conversation

    def get(self, conv_id: str) -> dict | None:
        if not _validate_id(conv_id):
            return None
        conv = self._conversations.get(conv_id)
        if conv is None:
            return None
        if self._clock() - self._touched.get(conv_id, 0) > self.max_age_seconds:
            self.delete(conv_id)
            return None
        return conv

    def get_or_create(self, conv_id: str | None) -> dict:
        if conv_id:
            conv = self.get(conv_id)
            if conv is not None:
                return conv
        return self.create(conv_id)

    def append(self, conv_id: str, role: str, content: str,
               symbol: str | None = None) -> bool:
        conv = self.get(conv_id)
        if conv is None:
            return False
        message = {"role": role, "content": content, "timestamp": self._now_iso()}
        if symbol:
            message["symbol"] = symbol
        conv["messages"].append(message)
        if len(conv["messages"]) > self.max_messages:
            del conv["messages"][:len(conv["messages"]) - self.max_messages]
        if role == "user" and conv["title"] == "New conversation":
            conv["title"] = _title(content)
        self._touch(conv_id)
        return True

    def set_last_symbol(self, conv_id: str, symbol: str | None) -> bool:
        conv = self.get(conv_id)
        if conv is None:
            return False
        conv["last_symbol"] = symbol
        self._touch(conv_id)
        return True

    def history(self, conv_id: str) -> list[dict]:
        conv = self.get(conv_id)
        return list(conv["messages"]) if conv else []

    def list(self) -> list[dict]:
        self.cleanup_old()
        conversations = [
            {
                "id": conv["id"],
                "title": conv["title"],
                "created_at": conv["created_at"],
                "updated_at": conv["updated_at"],
                "message_count": len(conv["messages"]),
                "last_symbol": conv["last_symbol"],
            }
            for conv in self._conversations.values()
        ]
        conversations.sort(key=lambda x: x["updated_at"], reverse=True)
        return conversations

    def delete(self, conv_id: str) -> bool:
        self._touched.pop(conv_id, None)
        return self._conversations.pop(conv_id, None) is not None

    def cleanup_old(self) -> int:
        cutoff = self._clock() - self.max_age_seconds
        stale = [cid for cid, t in self._touched.items() if t < cutoff]
        for cid in stale:
            self.delete(cid)
        if stale:
            print(f"[CHAT_HISTORY] Cleaned up {len(stale)} old conversations")
        return len(stale)

    def __len__(self):
        return len(self._conversations)
