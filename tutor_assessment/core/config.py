# tutor_assessment/core/config.py
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# CORS Configuration
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:8080").split(",")
    if origin.strip()
]

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
AZURE_SPEECH_KEY = os.getenv("AZURE_SPEECH_KEY")
AZURE_SPEECH_REGION = os.getenv("AZURE_SPEECH_REGION", "eastus")

# URLs
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")

# Language model
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30"))
OPENAI_MAX_RETRIES = int(os.getenv("OPENAI_MAX_RETRIES", "2"))

# spaCy pipeline used for syntax, entity and key phrase extraction
SPACY_MODEL = os.getenv("SPACY_MODEL", "en_core_web_sm")

# Audio defaults (16-bit mono PCM)
DEFAULT_SAMPLE_RATE = int(os.getenv("DEFAULT_SAMPLE_RATE", "16000"))
DEFAULT_LANGUAGE_CODE = os.getenv("DEFAULT_LANGUAGE_CODE", "en-US")

# Scoring defaults. Every value here can be overridden per call through the
# analyzer configs; these are only the starting points.
LLM_FALLBACK_SCORE = float(os.getenv("LLM_FALLBACK_SCORE", "0.7"))
BASELINE_CONFIDENCE = float(os.getenv("BASELINE_CONFIDENCE", "0.7"))
OPTIMAL_WPM_MIN = float(os.getenv("OPTIMAL_WPM_MIN", "120"))
OPTIMAL_WPM_MAX = float(os.getenv("OPTIMAL_WPM_MAX", "180"))
MIN_AUDIO_SECONDS = float(os.getenv("MIN_AUDIO_SECONDS", "1.0"))
MISMATCH_MIN_WPM = float(os.getenv("MISMATCH_MIN_WPM", "20"))
MISMATCH_MAX_WPM = float(os.getenv("MISMATCH_MAX_WPM", "500"))

# Lexical reference table shipped with the package
LEXICON_PATH = os.getenv(
    "LEXICON_PATH",
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "assets", "lexicon.json"),
)
