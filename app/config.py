import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _float_or_none(value):
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


class Config:
    BASE_DIR = Path(__file__).resolve().parent.parent
    DATA_DIR = Path(os.getenv("DATA_DIR") or BASE_DIR / "data")
    WORKFLOW_BASE_URL = os.getenv("WORKFLOW_BASE_URL", "http://localhost:5678/webhook")
    # None disables the client-side timeout; the platform's request timeout applies
    WORKFLOW_TIMEOUT = _float_or_none(os.getenv("WORKFLOW_TIMEOUT"))
    DEFAULT_USER_ID = os.getenv("DEFAULT_USER_ID", "user_test")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    WORKFLOW_BASE_URL = "http://workflow.test/webhook"
