"""Conversation orchestrator: bounded tool-calling loop with a deterministic fallback."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel

from agent.answer_builder import build_fallback_reply
from agent.llm_client import (
    ModelToolCall,
    OpenAIChatClient,
    is_rate_limited,
    parse_completion,
    retry_delay_seconds,
)
from agent.planner import ClarificationPlan, SmallTalkPlan, plan_message
from agent.small_talk import SmallTalkClient, reply_small_talk
from agent.tool_router import ToolRouter, tool_catalogue
from backend.services.date_ranges import civil_today, format_civil_date
from shared import config
from shared.models import ChatTurn, ToolError, ToolErrorCode


logger = logging.getLogger(__name__)


CANNOT_HANDLE_REPLY = "Xin lỗi, mình chưa xử lý được câu hỏi này."
ITERATION_LIMIT_REPLY = (
    "Xin lỗi, câu hỏi này cần nhiều bước xử lý hơn. "
    "Bạn thử hỏi cụ thể hơn (tháng/năm, danh mục, ví) nhé."
)
BACKEND_ERROR_REPLY = "Xin lỗi, hệ thống trợ lý đang gặp lỗi. Bạn thử lại sau nhé."
RATE_LIMITED_REPLY = (
    "Bạn đang bị giới hạn lượt gọi AI (quota). Vui lòng thử lại sau khoảng {seconds} giây nhé."
)

MAX_TOOL_WORKERS = 4


def build_system_instruction(today: date) -> str:
    """Return the Vietnamese system instruction for one conversation turn."""
    return (
        "Bạn là trợ lý tài chính cá nhân của app BudgetF. Luôn trả lời bằng tiếng Việt, ngắn gọn, rõ ràng.\n"
        f"Hôm nay là {format_civil_date(today)} ({today.isoformat()}), múi giờ {config.app_timezone()}.\n"
        "Quy tắc:\n"
        "- Mọi con số (thu, chi, số dư, ngân sách) PHẢI lấy từ kết quả công cụ. "
        "Tuyệt đối không tự bịa số liệu.\n"
        "- Nếu kết quả công cụ có tên danh mục hoặc ví không nhận diện được (unresolved), "
        "hãy hỏi lại người dùng bằng MỘT câu ngắn.\n"
        "- Ngân sách chỉ là ngân sách tổng của tháng, không theo danh mục hay ví.\n"
        "- month_offset: 0 = tháng này, -1 = tháng trước. Ngày theo định dạng YYYY-MM-DD.\n"
        "- Số tiền hiển thị theo VND, ví dụ 1.234.567₫."
    )


class AgentOutcome(str, Enum):
    ANSWER = "answer"
    ITERATION_LIMIT = "iteration_limit"
    RATE_LIMITED = "rate_limited"
    BACKEND_ERROR = "backend_error"
    FALLBACK = "fallback"


@dataclass(slots=True)
class ExecutedToolCall:
    tool_call_id: str
    tool_name: str
    arguments: dict[str, Any] | None
    result: BaseModel

    def as_dict(self) -> dict[str, object]:
        return {
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_name,
            "arguments": self.arguments,
            "result": self.result.model_dump(mode="json"),
        }


@dataclass(slots=True)
class AgentReply:
    """Serializable chat output for API responses."""

    reply: str
    outcome: AgentOutcome
    rounds: int = 0
    tool_calls: list[ExecutedToolCall] = field(default_factory=list)
    retry_after_s: int | None = None


def _decode_arguments(raw_arguments: Any) -> dict[str, Any] | ToolError:
    if raw_arguments is None or raw_arguments == "":
        return {}
    if isinstance(raw_arguments, dict):
        return raw_arguments
    if not isinstance(raw_arguments, str):
        return ToolError(
            code=ToolErrorCode.VALIDATION_ERROR,
            message="Tool arguments must be a JSON string.",
            details={"raw_arguments": repr(raw_arguments)},
        )
    try:
        parsed = json.loads(raw_arguments)
    except json.JSONDecodeError as exc:
        return ToolError(
            code=ToolErrorCode.VALIDATION_ERROR,
            message="Invalid JSON arguments from LLM tool call.",
            details={"error": str(exc), "raw_arguments": raw_arguments},
        )
    if not isinstance(parsed, dict):
        return ToolError(
            code=ToolErrorCode.VALIDATION_ERROR,
            message="Tool arguments JSON must deserialize to an object.",
            details={"raw_arguments": raw_arguments, "parsed_type": type(parsed).__name__},
        )
    return parsed


@dataclass(slots=True)
class AgentLoop:
    tool_router: ToolRouter
    llm_client: OpenAIChatClient | None = None
    small_talk_client: SmallTalkClient | None = None
    model: str = field(default_factory=config.llm_model)
    max_iterations: int = field(default_factory=config.llm_max_iterations)
    today_provider: Callable[[], date] = field(default=civil_today)

    @staticmethod
    def _conversation(message: str, history: list[ChatTurn]) -> list[dict[str, Any]]:
        turns = [{"role": turn.role, "content": turn.content} for turn in history if turn.content.strip()]
        if not turns or turns[-1] != {"role": "user", "content": message}:
            turns.append({"role": "user", "content": message})
        return turns

    def _execute_one(self, call: ModelToolCall, user_id: int) -> ExecutedToolCall:
        arguments = _decode_arguments(call.raw_arguments)
        if isinstance(arguments, ToolError):
            return ExecutedToolCall(call.id, call.name, None, arguments)

        logger.info("tool_execution_started tool_name=%s tool_call_id=%s", call.name, call.id)
        result = self.tool_router.call(call.name, arguments, user_id=user_id)
        logger.info("tool_execution_completed tool_name=%s tool_call_id=%s", call.name, call.id)
        return ExecutedToolCall(call.id, call.name, arguments, result)

    def _execute_tool_calls(self, calls: list[ModelToolCall], user_id: int) -> list[ExecutedToolCall]:
        """Run one turn's calls concurrently; results follow request order."""
        if len(calls) == 1:
            return [self._execute_one(calls[0], user_id)]

        results: list[ExecutedToolCall] = []
        with ThreadPoolExecutor(max_workers=min(len(calls), MAX_TOOL_WORKERS)) as executor:
            # Positional: tool_call_id is not guaranteed unique within a turn.
            futures = [executor.submit(self._execute_one, call, user_id) for call in calls]
            for call, future in zip(calls, futures):
                try:
                    results.append(future.result())
                except Exception as exc:
                    logger.exception("tool_execution_failed tool_name=%s tool_call_id=%s", call.name, call.id)
                    results.append(
                        ExecutedToolCall(
                            call.id,
                            call.name,
                            None,
                            ToolError(code=ToolErrorCode.BACKEND_ERROR, message=str(exc)),
                        )
                    )
        return results

    def _failure_reply(self, exc: Exception, rounds: int, executed: list[ExecutedToolCall]) -> AgentReply:
        if is_rate_limited(exc):
            seconds = retry_delay_seconds(exc)
            logger.warning("llm_rate_limited retry_after_s=%s round=%s", seconds, rounds)
            return AgentReply(
                reply=RATE_LIMITED_REPLY.format(seconds=seconds),
                outcome=AgentOutcome.RATE_LIMITED,
                rounds=rounds,
                tool_calls=executed,
                retry_after_s=seconds,
            )

        logger.exception("llm_request_failed round=%s", rounds)
        return AgentReply(
            reply=BACKEND_ERROR_REPLY,
            outcome=AgentOutcome.BACKEND_ERROR,
            rounds=rounds,
            tool_calls=executed,
        )

    def _run_tool_loop(self, message: str, *, user_id: int, history: list[ChatTurn]) -> AgentReply:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": build_system_instruction(self.today_provider())},
            *self._conversation(message, history),
        ]
        catalogue = tool_catalogue()
        executed: list[ExecutedToolCall] = []

        for round_number in range(1, self.max_iterations + 1):
            try:
                response = self.llm_client.create_chat_completion(
                    model=self.model,
                    messages=messages,
                    tools=catalogue,
                    tool_choice="auto",
                )
            except Exception as exc:
                return self._failure_reply(exc, round_number, executed)

            turn = parse_completion(response)
            if not turn.tool_calls:
                reply = turn.content.strip() or CANNOT_HANDLE_REPLY
                logger.info("llm_final_answer rounds=%s tool_calls=%s", round_number, len(executed))
                return AgentReply(
                    reply=reply,
                    outcome=AgentOutcome.ANSWER,
                    rounds=round_number,
                    tool_calls=executed,
                )

            logger.info("llm_tool_calls_requested round=%s count=%s", round_number, len(turn.tool_calls))
            results = self._execute_tool_calls(turn.tool_calls, user_id)
            executed.extend(results)
            messages.append(
                {
                    "role": "assistant",
                    "content": turn.content or None,
                    "tool_calls": [call.as_message_part() for call in turn.tool_calls],
                }
            )
            for result in results:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": result.tool_call_id,
                        "content": json.dumps(result.result.model_dump(mode="json"), ensure_ascii=False),
                    }
                )

        logger.warning("llm_iteration_limit_reached max_iterations=%s", self.max_iterations)
        return AgentReply(
            reply=ITERATION_LIMIT_REPLY,
            outcome=AgentOutcome.ITERATION_LIMIT,
            rounds=self.max_iterations,
            tool_calls=executed,
        )

    def _run_fallback(self, message: str, *, user_id: int, history: list[ChatTurn]) -> AgentReply:
        plan = plan_message(message, self.today_provider())

        if isinstance(plan, ClarificationPlan):
            return AgentReply(reply=plan.question, outcome=AgentOutcome.FALLBACK)

        if isinstance(plan, SmallTalkPlan):
            logger.info("fallback_small_talk message_length=%s", len(message))
            return AgentReply(
                reply=reply_small_talk(self.small_talk_client, plan.message, history),
                outcome=AgentOutcome.FALLBACK,
            )

        logger.info("fallback_intent_matched intent=%s tool_name=%s", plan.intent, plan.tool_name.value)
        result = self.tool_router.call(plan.tool_name.value, dict(plan.payload), user_id=user_id)
        return AgentReply(
            reply=build_fallback_reply(plan, result),
            outcome=AgentOutcome.FALLBACK,
            tool_calls=[ExecutedToolCall(plan.intent, plan.tool_name.value, dict(plan.payload), result)],
        )

    def handle_user_message(
        self,
        message: str,
        *,
        user_id: int,
        history: list[ChatTurn] | None = None,
    ) -> AgentReply:
        """Answer one chat message; never raises."""
        history = list(history or [])
        message = message.strip()
        logger.info(
            "agent_message_received user_id=%s message_length=%s history_length=%s mode=%s",
            user_id,
            len(message),
            len(history),
            "tools" if self.llm_client is not None else "fallback",
        )

        if self.llm_client is None:
            return self._run_fallback(message, user_id=user_id, history=history)
        return self._run_tool_loop(message, user_id=user_id, history=history)
