import dotenv
import os

dotenv.load_dotenv()

PORT = int(os.getenv("PORT", "8000"))

if not PORT:
    raise ValueError("PORT is not set")

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")

if not OPENROUTER_API_KEY:
    print("Warning: OPENROUTER_API_KEY is not set. Generation will not work.")

APP_URL = os.getenv("APP_URL", "http://localhost:3000")
APP_TITLE = os.getenv("APP_TITLE", "CodeUI")

# Comma separated; unset means every known model is enabled
ENABLED_AI_MODELS = os.getenv("ENABLED_AI_MODELS")

GENERATION_MAX_TOKENS = int(os.getenv("GENERATION_MAX_TOKENS", "16000"))
GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.7"))
GENERATION_ENDPOINT = os.getenv("GENERATION_ENDPOINT", f"http://localhost:{PORT}/api/ai")

HISTORY_MAX_SIZE = int(os.getenv("HISTORY_MAX_SIZE", "50"))
HISTORY_BATCH_DELAY_MS = int(os.getenv("HISTORY_BATCH_DELAY_MS", "300"))
STYLE_PERSIST_DEBOUNCE_MS = int(os.getenv("STYLE_PERSIST_DEBOUNCE_MS", "500"))
STYLE_STORAGE_KEY = os.getenv("STYLE_STORAGE_KEY", "style-panel-history")
