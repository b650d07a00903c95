import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

# ---- LLM providers ----
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "")  # openai | anthropic, empty = auto-detect

LLM_MODEL = os.getenv("LLM_MODEL", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2048"))
LLM_TIMEOUT_MS = int(os.getenv("LLM_TIMEOUT_MS", "30000"))

# ---- Knowledge corpus ----
KNOWLEDGE_DATA_PATH = os.getenv("KNOWLEDGE_DATA_PATH", "")  # empty = bundled data

# ---- Persistence / API ----
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./infraflow.db")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
