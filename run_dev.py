#!/usr/bin/env python3
"""
Development server runner for the Purine Vision API.
"""

import os

import uvicorn

if __name__ == "__main__":
    # Verbose logging while developing
    os.environ.setdefault("LOG_LEVEL", "DEBUG")
    os.environ.setdefault("ARK_TIMEOUT", "30")

    uvicorn.run(
        "purine_vision.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info"
    )
