"""
Entry actions of each wizard step: validate input, call the workflow engine,
then hand the result to the pure transitions in ``machine``.

A step that fails raises ``StepFailed`` with a user-facing message and the
state is not advanced; retrying means calling the same action again.
"""
import logging
from typing import Any, Dict, List

import httpx

from ..errors import UpstreamError
from ..services.workflow_client import WorkflowClient
from ..utils.drive import format_file_count, is_drive_folder_url
from . import machine
from .state import STEP_CHOOSE_SHOP, STEP_DRIVE_FOLDER, STEP_IMPORT, STEP_PREVIEW, STEP_PRINTIFY_TOKEN

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 10
INVALID_TOKEN_ANSWER = "Invalid response format. Expected {tokenRef, shops}"


class StepFailed(Exception):
    def __init__(self, message: str, state: Dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.state = state


class ImportInProgress(machine.TransitionError):
    pass


def _upstream_message(err: Exception, fallback: str) -> str:
    if isinstance(err, UpstreamError):
        return f"{fallback}: {err.message}"
    return f"{fallback}: could not reach the workflow engine"


class WizardSteps:
    def __init__(self, client: WorkflowClient, user_id: str):
        self.client = client
        self.user_id = user_id

    # Step 1
    def submit_folder(self, state: Dict[str, Any], folder_url: str) -> Dict[str, Any]:
        machine.expect_step(state, STEP_DRIVE_FOLDER)
        url = (folder_url or "").strip()
        if not url:
            raise StepFailed("Please enter a Google Drive folder URL")
        if not is_drive_folder_url(url):
            raise StepFailed(
                "Please enter a valid Google Drive folder URL (must contain drive.google.com/drive/folders/)"
            )

        try:
            result = self.client.validate_folder(url, self.user_id)
        except (UpstreamError, httpx.HTTPError) as e:
            logger.warning("Folder validation failed for %s: %s", url, e)
            raise StepFailed(_upstream_message(e, "Failed to validate folder"))

        if not result:
            raise StepFailed("Empty response from folder validation")
        if result.get("message") == "Workflow was started":
            raise StepFailed("Workflow started but no validation data received")
        if not result.get("folderId") or not isinstance(result.get("fileCount"), int):
            raise StepFailed("Invalid response format. Expected {folderId, fileCount, sample}")

        logger.info("Folder %s validated: %s", result["folderId"], format_file_count(result["fileCount"]))
        return machine.folder_validated(state, url, result)

    # Step 2
    def submit_token(self, state: Dict[str, Any], api_token: str, name: str | None = None) -> Dict[str, Any]:
        machine.expect_step(state, STEP_PRINTIFY_TOKEN)
        token = (api_token or "").strip()
        if not token:
            raise StepFailed("Please enter your Printify API token")
        if len(token) < MIN_TOKEN_LENGTH:
            raise StepFailed("API token seems too short. Please check your token.")

        try:
            verified = self.client.verify_token(token, self.user_id, state["importId"], name)
            token_ref = verified.get("tokenRef") or verified.get("token_ref")
            if not token_ref:
                raise StepFailed(INVALID_TOKEN_ANSWER)
            shops = verified.get("shops")
            if shops is None:
                listed = self.client.list_shops(self.user_id, api_token_id=str(token_ref),
                                                import_id=state["importId"])
                shops = listed.get("shops")
        except (UpstreamError, httpx.HTTPError) as e:
            logger.warning("Token verification failed: %s", e)
            raise StepFailed(_upstream_message(e, "Failed to verify API token"))

        if not isinstance(shops, list):
            raise StepFailed(INVALID_TOKEN_ANSWER)
        if not shops:
            raise StepFailed("No shops found for this Printify token")

        logger.info("Token verified, %d shop(s) returned", len(shops))
        return machine.token_verified(state, token, str(token_ref), shops)

    # Step 3
    def choose_shop(self, state: Dict[str, Any], shop_id) -> Dict[str, Any]:
        machine.expect_step(state, STEP_CHOOSE_SHOP)
        if shop_id in (None, ""):
            raise StepFailed("Please select a shop")
        try:
            chosen = machine.shop_chosen(state, shop_id)
        except ValueError as e:
            raise StepFailed(str(e))

        try:
            self.client.call("choose_shop", {
                "apiTokenId": state["tokenRef"],
                "shopId": chosen["selectedShopId"],
                "userId": self.user_id,
                "isDefault": False,
            })
        except (UpstreamError, httpx.HTTPError) as e:
            logger.warning("Recording shop choice failed: %s", e)
            raise StepFailed(_upstream_message(e, "Failed to choose shop"))
        return chosen

    # Step 4
    def _fetch_files(self, state) -> List[Dict[str, Any]]:
        try:
            result = self.client.fetch_images(state["folderId"], self.user_id, state["importId"])
        except (UpstreamError, httpx.HTTPError) as e:
            logger.warning("Fetching images failed for folder %s: %s", state["folderId"], e)
            raise StepFailed(_upstream_message(e, "Failed to fetch images"))
        return result.get("files") or []

    def list_files(self, state: Dict[str, Any]) -> Dict[str, Any]:
        machine.expect_step(state, STEP_PREVIEW)
        return machine.files_listed(state, self._fetch_files(state))

    def confirm_files(self, state: Dict[str, Any], files: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
        """Advance to the import with ``files``, the listed files, or a fresh listing."""
        machine.expect_step(state, STEP_PREVIEW)
        if files is None:
            files = state["files"] or self._fetch_files(state)
        if not files:
            raise StepFailed("No designs found in this folder")
        return machine.files_confirmed(state, files)

    # Step 5
    def run_import(self, state: Dict[str, Any], push_to_shopify: bool = False) -> Dict[str, Any]:
        """
        Run the import once per (folder, token, shop). A failure is recorded in
        ``error`` and the step stays on 5 so the import can be retried.
        """
        machine.expect_step(state, STEP_IMPORT)
        if state["isComplete"]:
            return state

        key = self.client.deduper.key_for(state["folderId"], state["tokenRef"], state["selectedShopId"])
        if not self.client.deduper.acquire(key):
            raise ImportInProgress(f"Import already running for {key}")

        state = machine.import_started(state)
        try:
            result = self.client.import_to_printify(
                state["folderId"], state["selectedShopId"], self.user_id, state["importId"],
                push_to_shopify=push_to_shopify,
            )
        except (UpstreamError, httpx.HTTPError) as e:
            logger.warning("Import failed for %s: %s", key, e)
            return machine.import_failed(state, _upstream_message(e, "Import failed"))
        finally:
            self.client.deduper.release(key)

        if result.get("success") is False:
            return machine.import_failed(state, result.get("message") or "Import failed")
        return machine.import_finished(state, result)
