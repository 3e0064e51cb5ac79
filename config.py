import os

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_bool(name, default):
    return os.environ.get(name, str(default)).lower() in ['true', 'on', '1']


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or "sqlite:///" + os.path.join(basedir, "handoff.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get("SECRET_KEY") or "a-dev-secret-key-that-is-not-so-secret"
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", 24))

    FRONTEND_URL = os.environ.get("FRONTEND_URL", "*")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Automated responder backend (OpenAI-compatible chat completions)
    RESPONDER_API_KEY = os.environ.get("RESPONDER_API_KEY") or os.environ.get("META_API_KEY")
    RESPONDER_BASE_URL = os.environ.get("RESPONDER_BASE_URL", "https://openrouter.ai/api/v1")
    RESPONDER_MODEL = os.environ.get("RESPONDER_MODEL", "meta-llama/llama-3.1-8b-instruct")
    RESPONDER_TIMEOUT = float(os.environ.get("RESPONDER_TIMEOUT", 20))
    RESPONDER_TEMPERATURE = float(os.environ.get("RESPONDER_TEMPERATURE", 0.5))
    RESPONDER_MAX_TOKENS = int(os.environ.get("RESPONDER_MAX_TOKENS", 600))
    RESPONDER_REFERER = os.environ.get("RESPONDER_REFERER", "http://localhost:5000")
    RESPONDER_TITLE = os.environ.get("RESPONDER_TITLE", "E-Governance Chatbot")

    # Message routing
    HISTORY_LIMIT = int(os.environ.get("HISTORY_LIMIT", 10))
    KNOWLEDGE_MATCH_LIMIT = int(os.environ.get("KNOWLEDGE_MATCH_LIMIT", 2))
    KNOWLEDGE_KEYWORD_EXPANSION = _env_bool("KNOWLEDGE_KEYWORD_EXPANSION", True)
    ROUTER_WORKERS = int(os.environ.get("ROUTER_WORKERS", 8))


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RESPONDER_API_KEY = None
    RESPONDER_TIMEOUT = 2
    LOG_LEVEL = "WARNING"
