"""Tests for shared configuration helpers."""

from shared import config


def test_llm_enabled_defaults_to_false(monkeypatch) -> None:
    monkeypatch.delenv("AGENT_LLM_ENABLED", raising=False)

    assert config.llm_enabled() is False


def test_llm_enabled_true_string(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("AGENT_LLM_ENABLED", "true")

    assert config.llm_enabled() is True


def test_llm_enabled_forced_off_in_test_env(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("AGENT_LLM_ENABLED", "true")

    assert config.llm_enabled() is False


def test_fallback_llm_forced_off_in_ci_env(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "ci")
    monkeypatch.setenv("FALLBACK_LLM_ENABLED", "1")

    assert config.fallback_llm_enabled() is False


def test_fallback_llm_defaults(monkeypatch) -> None:
    monkeypatch.delenv("FALLBACK_LLM_URL", raising=False)
    monkeypatch.delenv("FALLBACK_LLM_MODEL", raising=False)

    assert config.fallback_llm_url() == "http://localhost:11434/api/chat"
    assert config.fallback_llm_model() == "llama3.1"


def test_llm_model_uses_default_when_missing(monkeypatch) -> None:
    monkeypatch.delenv("AGENT_LLM_MODEL", raising=False)

    assert config.llm_model() == "gpt-4o-mini"


def test_llm_max_iterations_default_and_invalid_values(monkeypatch) -> None:
    monkeypatch.delenv("AGENT_LLM_MAX_ITERATIONS", raising=False)
    assert config.llm_max_iterations() == 3

    monkeypatch.setenv("AGENT_LLM_MAX_ITERATIONS", "five")
    assert config.llm_max_iterations() == 3

    monkeypatch.setenv("AGENT_LLM_MAX_ITERATIONS", "0")
    assert config.llm_max_iterations() == 3

    monkeypatch.setenv("AGENT_LLM_MAX_ITERATIONS", "5")
    assert config.llm_max_iterations() == 5


def test_llm_timeout_parses_float(monkeypatch) -> None:
    monkeypatch.setenv("AGENT_LLM_TIMEOUT_S", "7.5")
    assert config.llm_timeout_s() == 7.5

    monkeypatch.setenv("AGENT_LLM_TIMEOUT_S", "-1")
    assert config.llm_timeout_s() == 20.0


def test_app_timezone_defaults_to_ho_chi_minh(monkeypatch) -> None:
    monkeypatch.delenv("APP_TIMEZONE", raising=False)

    assert config.app_timezone() == "Asia/Ho_Chi_Minh"


def test_budget_alerts_enabled_by_default(monkeypatch) -> None:
    monkeypatch.delenv("BUDGET_ALERTS_ENABLED", raising=False)
    assert config.budget_alerts_enabled() is True

    monkeypatch.setenv("BUDGET_ALERTS_ENABLED", "no")
    assert config.budget_alerts_enabled() is False


def test_cors_allow_origins_defaults_in_dev(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)

    assert config.cors_allow_origins() == ["http://localhost:3000", "http://127.0.0.1:3000"]


def test_cors_allow_origins_parses_comma_separated_list(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.com, https://b.com")

    assert config.cors_allow_origins() == ["https://a.com", "https://b.com"]


def test_cors_allow_origins_uses_ui_origin_in_prod(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.setenv("UI_ORIGIN", "https://budgetf.example.com")

    assert config.cors_allow_origins() == ["https://budgetf.example.com"]


def test_cors_allow_origins_warns_and_defaults_to_empty_in_prod(monkeypatch, caplog) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.delenv("UI_ORIGIN", raising=False)

    assert config.cors_allow_origins() == []
    assert "cors_allow_origins_empty_in_prod" in caplog.text
