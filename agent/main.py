"""Local server entrypoint for the agent API."""

from __future__ import annotations

import uvicorn

from shared import config


def main() -> None:
    """Serve ``agent.api:app`` on ``HOST``/``PORT`` (defaults 127.0.0.1:8000)."""
    uvicorn.run(
        "agent.api:app",
        host=config.get_env("HOST", "127.0.0.1") or "127.0.0.1",
        port=int(config.get_env("PORT", "8000") or "8000"),
        reload=config.app_env().lower() in {"dev", "local"},
    )


if __name__ == "__main__":
    main()
