"""FastAPI entrypoint for agent HTTP endpoints."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from agent.factory import build_agent_loop
from agent.loop import AgentLoop
from backend.factory import BackendServices, build_backend_services
from backend.reporting import build_monthly_report_data, generate_monthly_report_pdf
from backend.services.budget_alerts import schedule_budget_alert_check
from backend.services.date_ranges import DateRangeError, civil_today, derive_range
from shared import config as _config
from shared.models import ChatTurn, MonthSelector


logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    """Incoming chat request payload."""

    message: str
    history: list[ChatTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Outgoing chat response payload."""

    reply: str
    outcome: str
    rounds: int
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)
    retry_after_s: int | None = None


@lru_cache(maxsize=1)
def get_backend_services() -> BackendServices:
    """Create and cache backend services once per process."""
    return build_backend_services()


@lru_cache(maxsize=1)
def get_agent_loop() -> AgentLoop:
    """Create and cache the agent loop once per process."""
    loop = build_agent_loop(get_backend_services())
    logger.info(
        "using_agent_loop mode=%s max_iterations=%s",
        "tools" if loop.llm_client is not None else "fallback",
        loop.max_iterations,
    )
    return loop


def _resolve_user_id(x_user_id: str | None) -> int:
    """Read the caller id forwarded by the upstream auth gateway."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        user_id = int(x_user_id.strip())
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header") from exc
    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    return user_id


app = FastAPI(title="BudgetF Finance Assistant API")

ALLOW_ORIGINS = _config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


@app.post("/agent/chat", response_model=ChatResponse)
def agent_chat(
    payload: ChatRequest,
    x_user_id: str | None = Header(default=None),
) -> ChatResponse:
    """Answer one chat message about the caller's finances."""

    logger.info(
        "agent_chat_received message_length=%s history_length=%s",
        len(payload.message),
        len(payload.history),
    )
    user_id = _resolve_user_id(x_user_id)
    if not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message must not be empty")

    agent_reply = get_agent_loop().handle_user_message(
        payload.message,
        user_id=user_id,
        history=payload.history,
    )
    logger.info(
        "agent_chat_completed user_id=%s outcome=%s rounds=%s tool_calls=%s",
        user_id,
        agent_reply.outcome.value,
        agent_reply.rounds,
        len(agent_reply.tool_calls),
    )
    return ChatResponse(
        reply=agent_reply.reply,
        outcome=agent_reply.outcome.value,
        rounds=agent_reply.rounds,
        tool_calls=[call.as_dict() for call in agent_reply.tool_calls],
        retry_after_s=agent_reply.retry_after_s,
    )


@app.get("/finance/reports/monthly")
def get_monthly_report_pdf(
    x_user_id: str | None = Header(default=None),
    month_offset: int = 0,
    month: int | None = None,
    year: int | None = None,
) -> Response:
    """Render the caller's monthly statement as a PDF."""

    user_id = _resolve_user_id(x_user_id)
    try:
        selector = MonthSelector(month_offset=month_offset, month=month, year=year)
        period = derive_range(
            today=civil_today(),
            month_offset=selector.month_offset,
            month=selector.month,
            year=selector.year,
        )
    except (ValidationError, DateRangeError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    services = get_backend_services()
    report_data = build_monthly_report_data(services.aggregation, user_id, period)
    pdf_bytes = generate_monthly_report_pdf(report_data)
    logger.info("monthly_report_generated user_id=%s period=%s size=%s", user_id, period.label, len(pdf_bytes))

    filename_period = f"{period.year}-{period.month:02d}"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="bao-cao-{filename_period}.pdf"'},
    )


@app.post("/finance/budget-alerts/check", status_code=202)
def check_budget_alerts(
    background_tasks: BackgroundTasks,
    x_user_id: str | None = Header(default=None),
) -> dict[str, bool]:
    """Queue an in-app budget alert check for the caller."""

    user_id = _resolve_user_id(x_user_id)
    scheduled = schedule_budget_alert_check(
        get_backend_services().budget_alerts,
        user_id,
        add_task=background_tasks.add_task,
    )
    return {"scheduled": scheduled}
