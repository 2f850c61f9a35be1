#!/usr/bin/env python3
"""Run the backend API server (admin sync trigger + entity listings)."""
import os
from pathlib import Path

import uvicorn

backend = Path(__file__).resolve().parent.parent
os.chdir(backend)

if __name__ == "__main__":
    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run(
        "fpl_sync.api.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
