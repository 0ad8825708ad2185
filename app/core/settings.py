# app/core/settings.py
from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv

# Load .env from the repo root
load_dotenv()

# Messages / constants
DISCLAIMER_TEXT = "Estimates only. Final duties and taxes are assessed by customs at import."
UNSUPPORTED_DISCLOSURE = "International duties and taxes may apply on delivery."

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "0").strip().lower() in {"1", "true", "yes", "on"}
LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))

# CORS
CORS_ORIGINS: List[str] = [
    o for o in os.getenv("CORS_ORIGINS", "*").split(",") if o
]
