"""Configuration settings for the transcript task-graph service."""
import os
from dotenv import load_dotenv

load_dotenv()

# Model endpoint configuration (any OpenAI-compatible chat completions API)
LLM_API_URL = os.getenv("LLM_API_URL", "https://api.openai.com/v1")
LLM_API_KEY = os.getenv("LLM_API_KEY", None)

# Model parameters
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4.1-mini")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2000"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "1"))

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///taskgraph.db")

# Runtime
RESULT_CACHE_SIZE = int(os.getenv("RESULT_CACHE_SIZE", "256"))
JOB_WORKERS = int(os.getenv("JOB_WORKERS", "4"))
APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# HTTP server
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
