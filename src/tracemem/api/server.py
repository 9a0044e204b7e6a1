"""
Server module for uvicorn to import.

This module creates the FastAPI app instance using configuration
from environment variables (set by the CLI).
"""

import os

from tracemem.api.app import create_app

# Read configuration from environment variables (set by CLI)
trace_config = os.environ.get("TRACEMEM_API_TRACE_CONFIG", "config.toml")
scoring_config = os.environ.get("TRACEMEM_API_SCORING_CONFIG", "scoring_config.toml")

# Create the app instance
app = create_app(trace_path=trace_config, scoring_path=scoring_config)
