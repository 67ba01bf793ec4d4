"""Composition root for agent orchestration."""

from __future__ import annotations

import logging

from agent.backend_client import BackendClient
from agent.llm_client import OpenAIChatClient, OpenAIChatClientImpl
from agent.loop import AgentLoop
from agent.small_talk import OllamaSmallTalkClient, SmallTalkClient
from agent.tool_router import ToolRouter
from backend.factory import BackendServices, build_backend_services
from shared import config


logger = logging.getLogger(__name__)


def build_llm_client() -> OpenAIChatClient | None:
    """Return the tool-calling client, or None when the fallback path must be used."""
    if not config.llm_enabled():
        return None

    api_key = config.openai_api_key()
    if not api_key:
        logger.warning("llm_disabled_missing_api_key; using pattern fallback")
        return None
    return OpenAIChatClientImpl(api_key=api_key, timeout_s=config.llm_timeout_s())


def build_small_talk_client() -> SmallTalkClient | None:
    if not config.fallback_llm_enabled():
        return None
    return OllamaSmallTalkClient(url=config.fallback_llm_url(), model=config.fallback_llm_model())


def build_agent_loop(backend_services: BackendServices | None = None) -> AgentLoop:
    """Build an executable in-process agent loop wiring all dependencies."""

    services = backend_services or build_backend_services()
    tool_router = ToolRouter(backend_client=BackendClient(tool_service=services.tool_service))
    return AgentLoop(
        tool_router=tool_router,
        llm_client=build_llm_client(),
        small_talk_client=build_small_talk_client(),
    )
