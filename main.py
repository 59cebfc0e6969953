#!/usr/bin/env python3
import os
import logging
import uvicorn
from app.app import create_app

logger = logging.getLogger(__name__)

# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = os.getenv("RELOAD", "false").lower() == "true"

    logger.info("Starting report query engine on %s:%s", host, port)

    uvicorn.run("main:app", host=host, port=port, reload=reload_enabled)
