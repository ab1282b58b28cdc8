import os
from dotenv import load_dotenv

load_dotenv()

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Config:
    # API
    API_PREFIX = os.getenv("API_PREFIX", "/api/zone-planner")

    # OpenAI-compatible text generation
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
    PLAN_MODEL = os.getenv("PLAN_MODEL", "gpt-4o")
    PLAN_MAX_TOKENS = int(os.getenv("PLAN_MAX_TOKENS", "2000"))
    PLAN_TEMPERATURE = float(os.getenv("PLAN_TEMPERATURE", "0"))
    PLAN_TIMEOUT_SECONDS = float(os.getenv("PLAN_TIMEOUT_SECONDS", "60"))

    # Reference data
    REFERENCE_TABLES_PATH = os.getenv(
        "REFERENCE_TABLES_PATH",
        os.path.join(_PACKAGE_DIR, "data", "reference_tables.json"),
    )

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
    LOG_DIR = os.getenv("LOG_DIR", "logs")
