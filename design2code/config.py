"""Service configuration constants: single source of truth for env vars."""

import os
from pathlib import Path

# Server binding: used by entrypoint / uvicorn
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# CORS: comma-separated origins
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")

# Vision providers: Gemini is preferred, OpenAI is used when Gemini is not configured
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")

# Transient files (PDF page renders, selenium page files)
TEMP_DIR = Path(os.getenv("TEMP_DIR", str(Path(__file__).parent.parent / "temp")))
