#!/usr/bin/env python3
# backend/run.py
"""
Server runner.

    python run.py              # uvicorn on 0.0.0.0:8000
    RELOAD=true python run.py  # auto-reload for local development
"""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "zlecenia.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "false").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
