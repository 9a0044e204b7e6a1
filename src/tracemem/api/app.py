"""
FastAPI application factory for the trace API.

Creates a configured FastAPI application with the session/trace endpoints
and a health endpoint.
"""

import weave
from fastapi import FastAPI

from tracemem.api.router import router, set_registry
from tracemem.detector import TraceDetector
from tracemem.sessions import SessionRegistry
from tracemem.utils.config import load_configs
from tracemem.utils.logger import get_logger, set_global_log_level

logger = get_logger("App")


def create_app(
    trace_path: str = "config.toml",
    scoring_path: str = "scoring_config.toml",
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        trace_path: Path to the trace configuration file
        scoring_path: Path to the scoring registry file

    Returns:
        Configured FastAPI application ready to serve requests
    """
    cfg = load_configs(trace_path, scoring_path)
    set_global_log_level(cfg.logging_level)

    if cfg.weave_project:
        weave.init(cfg.weave_project)

    app = FastAPI(
        title="Trace Memory API",
        description="Trace detection, scoring and compression for agent tool calls",
        version="0.1.0",
    )

    # One detector per session, all built from the same config
    registry = SessionRegistry(lambda: TraceDetector.from_config(cfg))
    set_registry(registry)

    app.include_router(router)

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "sessions": len(registry.session_ids()),
            "scoring_profile": cfg.scoring.profile or "default",
        }

    logger.info(f"🚀 Trace API initialized from {trace_path} and {scoring_path}")
    return app
