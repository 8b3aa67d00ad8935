# bizlicense/config.py
from dotenv import load_dotenv
from pathlib import Path
import os

load_dotenv()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# LLM report parameters
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
MOCK_OPENAI = os.getenv("MOCK_OPENAI", "false").lower() == "true"
REPORT_TEMPERATURE = float(os.getenv("REPORT_TEMPERATURE", "0.7"))
REPORT_MAX_TOKENS = int(os.getenv("REPORT_MAX_TOKENS", "2000"))
REPORT_MAX_ATTEMPTS = 3
REPORT_RETRY_BASE_SECONDS = 1.0

# Runtime parameters
BATCH_SIZE = 15
CONCURRENCY = 100
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# HTTP boundary
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))

# Requirement catalog (read once at startup)
CATALOG_PATH = os.getenv(
    "CATALOG_PATH",
    str(Path(__file__).parent / "data" / "requirements.json"),
)

# File names
INPUT_CSV = os.getenv("INPUT_CSV", "businesses.csv")
OUTPUT_CSV = os.getenv("OUTPUT_CSV", "business_requirements.csv")
REPORTS_DIR = os.getenv("REPORTS_DIR", "reports")
