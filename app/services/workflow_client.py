import json
import logging
import os
import threading

import httpx
from dotenv import load_dotenv

from ..errors import UpstreamError

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = {"apiToken", "tokenRef", "token_ref"}


def mask_payload(payload: dict) -> dict:
    """Copy of ``payload`` safe for logs (API tokens hidden)."""
    return {k: ("***" if k in SENSITIVE_KEYS and v else v) for k, v in (payload or {}).items()}


class RequestDeduper:
    """
    In-flight guard for requests that must not run twice concurrently.

    Keys are built with ``key_for`` from the identifying parts of a request
    (e.g. folder id, token ref, shop id). A key is held from ``acquire`` until
    ``release``; callers release on completion and on error, so a key is
    never left set. Losing the race only means a duplicate request.
    """

    def __init__(self):
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    @staticmethod
    def key_for(*parts) -> str:
        return "-".join(str(p) for p in parts)

    def acquire(self, key: str) -> bool:
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def release(self, key: str):
        with self._lock:
            self._in_flight.discard(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def clear(self) -> int:
        with self._lock:
            n = len(self._in_flight)
            self._in_flight.clear()
            return n


class WorkflowClient:
    """Synchronous JSON client for the workflow engine's webhooks."""

    WEBHOOKS = {
        "validate_folder": "verify-google-folder",
        "verify_token": "verify-printify-token",
        "log_api_token": "log-printify-api-token",
        "log_token_usage": "log-printify-token",
        "list_shops": "list-shops",
        "choose_shop": "log-printify-shop-id",
        "fetch_images": "fetch-images",
        "import_to_printify": "import-to-printify",
        "select_print_provider": "select-print-provider",
        "create_preset": "create-preset",
        "create_preset_from_product": "create-preset-from-printify-product",
        "list_printify_products": "list-printify-products",
        "mockup_jobs": "mockup-jobs",
    }

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        load_dotenv()
        self.base_url = (base_url or os.getenv("WORKFLOW_BASE_URL") or "http://localhost:5678/webhook").rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        self.deduper = RequestDeduper()

    def init_app(self, app):
        self.base_url = app.config["WORKFLOW_BASE_URL"].rstrip("/")
        self.timeout = app.config.get("WORKFLOW_TIMEOUT")
        app.extensions["workflow_client"] = self

    def url_for(self, operation: str) -> str:
        return f"{self.base_url}/{self.WEBHOOKS.get(operation, operation)}"

    def call(self, operation: str, payload: dict) -> dict:
        """
        POST ``payload`` to the webhook behind ``operation`` and return its JSON.

        A non-2xx answer raises ``UpstreamError`` carrying the upstream status
        and body; a 2xx answer that is not JSON raises a 502. An empty body is
        returned as ``{}``. Transport errors propagate untouched.
        """
        url = self.url_for(operation)
        logger.info("Calling workflow %s at %s with %s", operation, url, mask_payload(payload))
        with httpx.Client(timeout=self.timeout) as client:
            r = client.post(url, headers=self.headers, json=payload)
        logger.info("Workflow %s answered %s", operation, r.status_code)

        if r.is_error:
            logger.error("Workflow %s failed: %s %s", operation, r.status_code, r.text)
            raise UpstreamError(
                f"Webhook failed: {r.reason_phrase or r.status_code}",
                status_code=r.status_code,
                details=r.text,
            )

        text = r.text
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except ValueError:
            raise UpstreamError("Workflow engine returned invalid JSON", status_code=502, details=text[:500])

    # Typed helpers for the calls the wizard and the shop endpoints chain together

    def validate_folder(self, folder_url: str, user_id: str) -> dict:
        return self.call("validate_folder", {"folderUrl": folder_url, "userId": user_id})

    def verify_token(self, api_token: str, user_id: str, import_id: str, name: str | None = None) -> dict:
        return self.call("verify_token", {
            "apiToken": api_token, "userId": user_id, "importId": import_id,
            "name": name, "is_default": False,
        })

    def list_shops(self, user_id: str, api_token_id: str | None = None, import_id: str | None = None) -> dict:
        payload = {"userId": user_id}
        if api_token_id:
            payload["apiTokenId"] = api_token_id
        if import_id:
            payload["importId"] = import_id
        return self.call("list_shops", payload)

    def fetch_images(self, folder_id: str, user_id: str, import_id: str) -> dict:
        return self.call("fetch_images", {"folderId": folder_id, "userId": user_id, "importId": import_id})

    def import_to_printify(self, folder_id: str, shop_id, user_id: str, import_id: str,
                           push_to_shopify: bool = False) -> dict:
        return self.call("import_to_printify", {
            "folderId": folder_id, "shopId": shop_id, "userId": user_id,
            "importId": import_id, "pushToShopify": push_to_shopify,
        })
