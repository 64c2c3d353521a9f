"""Configuration constants for pagewise."""

from pagewise.config.loader import load_config
from pagewise.logger import DEFAULT_LOG_FILE


# --- Initialize Configuration ---
_CONFIG = load_config()

# --- Expose Constants ---

# General
_gen = _CONFIG["general"]
LOG_LEVEL = _gen.get("log_level", "INFO")
LOG_FILE = _gen.get("log_file", DEFAULT_LOG_FILE)
REQUEST_TIMEOUT = _gen.get("request_timeout", 30)
USER_AGENT = _gen.get(
    "user_agent",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
)

# Embedding provider
_embedding = _CONFIG["embedding"]
EMBEDDING_PROVIDER = str(_embedding.get("provider", "http")).strip().lower()
EMBEDDING_API_URL = _embedding.get(
    "api_url", "https://api.groq.com/openai/v1/embeddings"
)
EMBEDDING_API_KEY_ENV = _embedding.get("api_key_env", "GROQ_API_KEY")
EMBEDDING_MODEL = _embedding.get("model", "nomic-embed-text-v1_5")
EMBEDDING_TIMEOUT = _embedding.get("timeout", 30)

_embedding_local = _embedding.get("local", {})
LOCAL_EMBEDDING_MODEL = _embedding_local.get(
    "model", "sentence-transformers/all-MiniLM-L6-v2"
)
LOCAL_EMBEDDING_DEVICE = _embedding_local.get("device", "cpu")
LOCAL_EMBEDDING_NORMALIZE = bool(_embedding_local.get("normalize", True))
LOCAL_EMBEDDING_LOCAL_FILES_ONLY = bool(
    _embedding_local.get("local_files_only", False)
)

# Segmenter
_segmenter = _CONFIG["segmenter"]
SEMANTIC_BLOCK_MIN_CHARS = _segmenter.get("semantic_block_min_chars", 100)
TEXT_BLOCK_MIN_CHARS = _segmenter.get("text_block_min_chars", 100)
TEXT_BLOCK_MAX_CHARS = _segmenter.get("text_block_max_chars", 1000)
TEXT_BLOCK_MIN_WORDS = _segmenter.get("text_block_min_words", 20)
MIN_EMBEDDING_CHARS = _segmenter.get("min_embedding_chars", 50)

# Ranker
_ranker = _CONFIG["ranker"]
RANKER_MAX_RESULTS = _ranker.get("max_results", 5)
RANKER_MIN_SIMILARITY = _ranker.get("min_similarity", 0.1)
RANKER_TOP_SECTIONS = _ranker.get("top_sections", 3)
CLEAR_QUERY_CACHE_ON_READ = bool(_ranker.get("clear_query_cache_on_read", False))

# Page actions
_actions = _CONFIG["actions"]
HIGHLIGHT_MS = _actions.get("highlight_ms", 3000)
WAIT_TIMEOUT_MS = _actions.get("wait_timeout_ms", 5000)
FIND_SECTIONS_LIMIT = _actions.get("find_sections_limit", 20)

# Browser
_browser = _CONFIG["browser"]
BROWSER_TYPE = _browser.get("browser", "chromium")
BROWSER_HEADLESS = bool(_browser.get("headless", False))
BROWSER_PAGE_TIMEOUT_MS = _browser.get("page_timeout_ms", 30000)
BROWSER_POST_LOAD_DELAY_MS = _browser.get("post_load_delay_ms", 1000)
