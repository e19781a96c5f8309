# app/extensions.py
from flask_cors import CORS
from dotenv import load_dotenv

from .identity import RequestIdentityResolver
from .services.workflow_client import WorkflowClient
from .storage.json_store import JsonStore
from .storage.repositories import PresetRepository, StoreRepository, TokenRepository

# Load env just once here
load_dotenv()

# CORS is a real Flask extension (keeps init_app)
cors = CORS()

# Workflow engine client; base URL and timeout come from app config in init_app
workflow_client = WorkflowClient()


class Storage:
    """Holds the JsonStore and its repositories; bound to DATA_DIR in init_app."""

    def __init__(self):
        self.store: JsonStore | None = None
        self.tokens: TokenRepository | None = None
        self.stores: StoreRepository | None = None
        self.presets: PresetRepository | None = None

    def init_app(self, app):
        self.store = JsonStore(app.config["DATA_DIR"])
        self.tokens = TokenRepository(self.store)
        self.stores = StoreRepository(self.store)
        self.presets = PresetRepository(self.store)
        app.extensions["storage"] = self


storage = Storage()


def init_identity(app):
    app.extensions.setdefault(
        "identity_resolver", RequestIdentityResolver(fallback=app.config["DEFAULT_USER_ID"])
    )
