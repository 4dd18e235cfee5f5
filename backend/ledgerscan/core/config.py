import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables (only in development)
# In containers, environment variables are set directly
if os.getenv("ENVIRONMENT") != "production":
    load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Local snapshot storage
DB_DIR_STR = os.getenv("DB_DIR", str(BASE_DIR / "data"))
DB_DIR = Path(DB_DIR_STR)
DB_DIR.mkdir(parents=True, exist_ok=True)

DATABASE_TYPE = os.getenv("DATABASE_TYPE", "json")  # Options: 'json', 'memory'
STORAGE_KEY = os.getenv("STORAGE_KEY", "financial-documents")

# AI extraction provider
AI_PROVIDER = os.getenv("AI_PROVIDER", "openrouter")  # Options: 'edge', 'openrouter', 'anthropic', 'heuristic'

EDGE_FUNCTION_URL = os.getenv("EDGE_FUNCTION_URL")
EDGE_FUNCTION_KEY = os.getenv("EDGE_FUNCTION_KEY")

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "google/gemini-2.5-flash")

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest")

EXTRACTION_TIMEOUT_SECONDS = float(os.getenv("EXTRACTION_TIMEOUT_SECONDS", "60"))
EXTRACTION_MAX_TOKENS = int(os.getenv("EXTRACTION_MAX_TOKENS", "2000"))
EXTRACTION_TEMPERATURE = float(os.getenv("EXTRACTION_TEMPERATURE", "0.1"))

# OCR pre-processing (optional)
OCR_API_KEY = os.getenv("OCR_API_KEY")
OCR_API_URL = os.getenv("OCR_API_URL", "https://api.nanobanana.pro/v1/process")
OCR_CONFIDENCE_THRESHOLD = float(os.getenv("OCR_CONFIDENCE_THRESHOLD", "0.5"))
OCR_TIMEOUT_SECONDS = float(os.getenv("OCR_TIMEOUT_SECONDS", "30"))

# Exchange rates
EXCHANGE_RATE_URL = os.getenv("EXCHANGE_RATE_URL", "https://api.exchangerate-api.com/v4/latest/CHF")
EXCHANGE_RATE_TTL_SECONDS = int(os.getenv("EXCHANGE_RATE_TTL_SECONDS", "3600"))
EXCHANGE_RATE_TIMEOUT_SECONDS = float(os.getenv("EXCHANGE_RATE_TIMEOUT_SECONDS", "10"))

# Supabase remote mirror (optional)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "processed_documents")
SUPABASE_USER_ID = os.getenv("SUPABASE_USER_ID")

# Upload limits
MAX_FILES_PER_BATCH = int(os.getenv("MAX_FILES_PER_BATCH", "50"))
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
ACCEPTED_MIME_PREFIXES = tuple(
    prefix.strip()
    for prefix in os.getenv("ACCEPTED_MIME_PREFIXES", "image/,application/pdf").split(",")
    if prefix.strip()
)

# Rate Limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "30"))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
