"""Configuration settings for the control-file importer"""
import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

# LLM Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")  # must accept temperature and max_tokens
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "1"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.1"))
LLM_MAX_INPUT_CHARS = int(os.getenv("LLM_MAX_INPUT_CHARS", "60000"))

# Property matching
MIN_MATCH_SCORE = float(os.getenv("MIN_MATCH_SCORE", "40"))  # accept only scores above this
SERIES_FAMILIES = tuple(
    family.strip().lower()
    for family in os.getenv("SERIES_FAMILIES", "aroeira").split(",")
    if family.strip()
)
SERIES_DEFAULT_SUFFIX = os.getenv("SERIES_DEFAULT_SUFFIX", "i").lower()

# Record validation
AMOUNT_REVIEW_THRESHOLD = Decimal(os.getenv("AMOUNT_REVIEW_THRESHOLD", "100000"))
MAX_STAY_DAYS = int(os.getenv("MAX_STAY_DAYS", "30"))
MAX_GUESTS = int(os.getenv("MAX_GUESTS", "20"))
MIN_GUEST_NAME_LENGTH = 3

# Platform fee rates per canonical platform
PLATFORM_FEE_RATES = {
    "Airbnb": Decimal("0.14"),
    "Booking.com": Decimal("0.15"),
    "VRBO": Decimal("0.12"),
    "Direct": Decimal("0"),
}

# HTTP upload handling
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.path.expanduser("~"), ".control_importer_uploads"))
CATALOG_PATH = os.getenv("CATALOG_PATH")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH")
