"""Small-talk backend for messages with no financial intent (Ollama chat API)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.request import Request, urlopen

from shared.models import ChatTurn


logger = logging.getLogger(__name__)

SMALL_TALK_SYSTEM_PROMPT = (
    "Bạn là trợ lý tài chính cá nhân cho app BudgetF, nói tiếng Việt, trả lời ngắn gọn, dễ hiểu. "
    "Bạn không có quyền truy cập dữ liệu tài chính của người dùng trong cuộc trò chuyện này, "
    "vì vậy không được đưa ra bất kỳ con số nào về thu chi hay số dư. "
    "Không được cam kết lợi nhuận hay lời khuyên đầu tư rủi ro."
)
SMALL_TALK_ERROR_REPLY = "Xin lỗi, hệ thống trợ lý đang gặp lỗi. Bạn thử lại sau nhé."
SMALL_TALK_DISABLED_REPLY = (
    "Mình có thể giúp bạn xem chi tiêu, thu nhập, ngân sách và số dư ví. "
    "Bạn thử hỏi: \"Tháng này chi bao nhiêu?\" nhé."
)
_EMPTY_REPLY = "Xin lỗi, hiện mình không trả lời được câu này."


class SmallTalkClient(Protocol):
    def chat(self, messages: list[dict[str, str]]) -> str:
        """Return the assistant reply for ``messages``."""


@dataclass(slots=True)
class OllamaSmallTalkClient:
    url: str
    model: str
    timeout_s: float = 30.0

    def chat(self, messages: list[dict[str, str]]) -> str:
        body = json.dumps({"model": self.model, "messages": messages, "stream": False}).encode("utf-8")
        request = Request(
            self.url,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urlopen(request, timeout=self.timeout_s) as response:
            payload: Any = json.loads(response.read().decode("utf-8") or "{}")

        message = payload.get("message") if isinstance(payload, dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"].strip() or _EMPTY_REPLY
        if isinstance(message, str) and message.strip():
            return message.strip()
        return _EMPTY_REPLY


def small_talk_messages(message: str, history: list[ChatTurn]) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": SMALL_TALK_SYSTEM_PROMPT}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in history)
    messages.append({"role": "user", "content": message})
    return messages


def reply_small_talk(client: SmallTalkClient | None, message: str, history: list[ChatTurn]) -> str:
    """Answer without financial data; never raises."""
    if client is None:
        return SMALL_TALK_DISABLED_REPLY
    try:
        return client.chat(small_talk_messages(message, history))
    except Exception:
        logger.exception("small_talk_failed")
        return SMALL_TALK_ERROR_REPLY
