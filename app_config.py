"""
Application configuration module for the Well Nice Concierge backend.
Contains environment variables, constants, and settings.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ═══════════════════════════════════════════
# ENVIRONMENT VARIABLES
# ═══════════════════════════════════════════

PORT = int(os.getenv("PORT", 5009))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "https://www.wellnice.com").split(",")
    if origin.strip()
]

# ═══════════════════════════════════════════
# LLM CONFIGURATION
# ═══════════════════════════════════════════

# LLM Provider settings
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai, anthropic, azure_openai
LLM_MODEL = os.getenv("LLM_MODEL", os.getenv("OPENAI_MODEL", "gpt-4"))
LLM_API_KEY = os.getenv("LLM_API_KEY", "") or os.getenv("OPENAI_API_KEY", "")
LLM_API_BASE_URL = os.getenv("LLM_API_BASE_URL", "")

# LLM behavior settings
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "800"))
LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

SYSTEM_PROMPT = os.getenv(
    "SYSTEM_PROMPT",
    "You are the Well Nice Concierge, a taste-maker recommending well-made things to UK audiences.",
)

# ═══════════════════════════════════════════
# CONVERSATION STORE
# ═══════════════════════════════════════════

CONVERSATION_TTL_HOURS = float(os.getenv("CONVERSATION_TTL_HOURS", "24"))
CONVERSATION_PRUNE_INTERVAL_SECONDS = int(os.getenv("CONVERSATION_PRUNE_INTERVAL_SECONDS", "3600"))
MAX_CONVERSATIONS = int(os.getenv("MAX_CONVERSATIONS", "10000"))
CONVERSATION_EVICT_FRACTION = float(os.getenv("CONVERSATION_EVICT_FRACTION", "0.2"))

# ═══════════════════════════════════════════
# PRODUCT LOOKUP
# ═══════════════════════════════════════════

GOOGLE_SEARCH_API_KEY = os.getenv("GOOGLE_SEARCH_API_KEY", "")
GOOGLE_SEARCH_ENGINE_ID = os.getenv("GOOGLE_SEARCH_ENGINE_ID", "")
GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
SEARCH_TIMEOUT_SECONDS = int(os.getenv("SEARCH_TIMEOUT_SECONDS", "5"))

# JSON array of product records; the built-in catalog is used when unset
PRODUCT_CATALOG_PATH = os.getenv("PRODUCT_CATALOG_PATH", "")

# ═══════════════════════════════════════════
# PARSER PLACEHOLDERS
# ═══════════════════════════════════════════

DEFAULT_PRICE = "£TBC"
DEFAULT_DESCRIPTION = "A well nice item"
DEFAULT_IMAGE = "/assets/images/product-placeholder.jpg"
DEFAULT_URL = "#"

DEFAULT_PRODUCTS_CAPTION = "Here are some options:"
DEFAULT_TABLE_TITLE = "Recommended Products"
DEFAULT_CARDS_CAPTION = "Curated Picks"
