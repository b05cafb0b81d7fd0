"""
Configuration settings for the Purine Vision API.
"""

import os

from dotenv import load_dotenv

# Load .env from the working directory before reading anything else
load_dotenv()

# Hosted model configuration
ARK_API_KEY = os.getenv("ARK_API_KEY", "")
ARK_ENDPOINT_ID = os.getenv("ARK_ENDPOINT_ID", "")
ARK_API_URL = os.getenv(
    "ARK_API_URL", "https://ark.cn-beijing.volces.com/api/v3/responses"
)

# Serverless hosts cut requests off at 10s, so leave a second of headroom
IS_VERCEL = os.getenv("VERCEL") == "1"
DEFAULT_TIMEOUT = 9.0 if IS_VERCEL else 30.0
REQUEST_TIMEOUT = float(os.getenv("ARK_TIMEOUT", DEFAULT_TIMEOUT))

# Upload limits
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", 10 * 1024 * 1024))  # 10MB
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

# Compression tiers: (minimum upload size, max edge in px, quality)
COMPRESSION_THRESHOLD = 1024 * 1024  # 1MB
COMPRESSION_TIERS = (
    (5 * 1024 * 1024, 1600, 0.7),
    (2 * 1024 * 1024, 1800, 0.75),
    (0, 1920, 0.8),
)
SECOND_PASS_MAX_EDGE = 1600
SECOND_PASS_QUALITY = 0.7

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# API configuration
API_TITLE = "Purine Vision API"
API_DESCRIPTION = """
Food purine recognition backed by a hosted vision-language model.

## Features:
- Detects foods in an uploaded photo and classifies them by purine content
- High (>150 mg/100g), medium (50-150 mg/100g) and low (<50 mg/100g) tiers
- Bounding boxes for every detected food region
- Server-side rendering of the annotated photo
"""
API_VERSION = "1.0.0"
