"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true", "yes", "on"}
_DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"
_DEFAULT_LLM_MODEL = "gpt-4o-mini"
_DEFAULT_MAX_ITERATIONS = 3
_DEFAULT_LLM_TIMEOUT_S = 20.0
_DEFAULT_FALLBACK_LLM_URL = "http://localhost:11434/api/chat"
_DEFAULT_FALLBACK_LLM_MODEL = "llama3.1"


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def _flag(name: str) -> bool:
    raw_value = get_env(name, "") or ""
    return raw_value.strip().lower() in _TRUE_VALUES


def _is_test_env() -> bool:
    return app_env().strip().lower() in {"test", "ci"}


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def app_timezone() -> str:
    """Return the IANA timezone used to compute the civil "today"."""
    return (get_env("APP_TIMEZONE", _DEFAULT_TIMEZONE) or _DEFAULT_TIMEZONE).strip() or _DEFAULT_TIMEZONE


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in {"dev", "local"}:
        return ["http://localhost:3000", "http://127.0.0.1:3000"]

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def llm_enabled() -> bool:
    """Return whether the tool-calling assistant is enabled."""
    if _is_test_env():
        return False

    return _flag("AGENT_LLM_ENABLED")


def llm_model() -> str:
    """Return configured LLM model with safe default."""
    return (get_env("AGENT_LLM_MODEL", _DEFAULT_LLM_MODEL) or _DEFAULT_LLM_MODEL).strip() or _DEFAULT_LLM_MODEL


def llm_max_iterations() -> int:
    """Return the hard cap of model rounds per chat message."""
    raw_value = (get_env("AGENT_LLM_MAX_ITERATIONS", "") or "").strip()
    if not raw_value:
        return _DEFAULT_MAX_ITERATIONS
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("invalid_llm_max_iterations value=%s", raw_value)
        return _DEFAULT_MAX_ITERATIONS
    return value if value >= 1 else _DEFAULT_MAX_ITERATIONS


def llm_timeout_s() -> float:
    """Return the wall-clock timeout applied to each LLM request."""
    raw_value = (get_env("AGENT_LLM_TIMEOUT_S", "") or "").strip()
    if not raw_value:
        return _DEFAULT_LLM_TIMEOUT_S
    try:
        value = float(raw_value)
    except ValueError:
        logger.warning("invalid_llm_timeout value=%s", raw_value)
        return _DEFAULT_LLM_TIMEOUT_S
    return value if value > 0 else _DEFAULT_LLM_TIMEOUT_S


def openai_api_key() -> str | None:
    """Return OpenAI API key when configured."""
    return get_env("OPENAI_API_KEY")


def fallback_llm_enabled() -> bool:
    """Return whether unmatched fallback messages may reach the small-talk model."""
    if _is_test_env():
        return False

    return _flag("FALLBACK_LLM_ENABLED")


def fallback_llm_url() -> str:
    """Return the Ollama-compatible chat endpoint used for small talk."""
    return (get_env("FALLBACK_LLM_URL", _DEFAULT_FALLBACK_LLM_URL) or _DEFAULT_FALLBACK_LLM_URL).strip()


def fallback_llm_model() -> str:
    """Return the small-talk model name."""
    return (
        get_env("FALLBACK_LLM_MODEL", _DEFAULT_FALLBACK_LLM_MODEL) or _DEFAULT_FALLBACK_LLM_MODEL
    ).strip() or _DEFAULT_FALLBACK_LLM_MODEL


def budget_alerts_enabled() -> bool:
    """Return whether budget alert checks are scheduled."""
    raw_value = get_env("BUDGET_ALERTS_ENABLED")
    if raw_value is None:
        return True
    return raw_value.strip().lower() in _TRUE_VALUES


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key when configured."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY")

