"""
Pure wizard transitions. Each function takes the current state and returns
a new one; nothing here performs I/O.

Step graph::

    1 folder -> 2 token -> (3 choose shop, only when >1 shop) -> 4 preview -> 5 import
"""
from typing import Any, Dict, List

from .state import (
    STEP_CHOOSE_SHOP,
    STEP_DRIVE_FOLDER,
    STEP_IMPORT,
    STEP_PREVIEW,
    STEP_PRINTIFY_TOKEN,
    initial_state,
    merge,
    sample_file,
    shop_summary,
)


class TransitionError(Exception):
    """The requested action does not belong to the wizard's current step."""


def expect_step(state: Dict[str, Any], step: int):
    if state["currentStep"] != step:
        raise TransitionError(f"Wizard is on step {state['currentStep']}, not step {step}")


def next_step_after_token(shops: List[Dict[str, Any]]) -> int:
    return STEP_CHOOSE_SHOP if len(shops) > 1 else STEP_PREVIEW


def folder_validated(state, folder_url: str, result: Dict[str, Any]) -> Dict[str, Any]:
    expect_step(state, STEP_DRIVE_FOLDER)
    return merge(state, {
        "folderUrl": folder_url,
        "folderId": result["folderId"],
        "fileCount": result["fileCount"],
        "sampleFiles": [sample_file(f) for f in (result.get("sample") or [])],
        "importId": result.get("importId") or state["importId"],
        "currentStep": STEP_PRINTIFY_TOKEN,
    })


def token_verified(state, api_token: str, token_ref: str, shops: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Record the verified token and the freshly returned shops.

    One shop is selected automatically and the chooser is skipped; with
    several, the chooser is next and nothing is selected yet.
    """
    expect_step(state, STEP_PRINTIFY_TOKEN)
    shops = [shop_summary(s) for s in shops]
    next_step = next_step_after_token(shops)
    return merge(state, {
        "apiToken": api_token,
        "tokenRef": token_ref,
        "shops": shops,
        "selectedShopId": shops[0]["id"] if next_step == STEP_PREVIEW and shops else None,
        "currentStep": next_step,
    })


def shop_chosen(state, shop_id) -> Dict[str, Any]:
    expect_step(state, STEP_CHOOSE_SHOP)
    match = next((s for s in state["shops"] if str(s["id"]) == str(shop_id)), None)
    if match is None:
        raise ValueError(f"Shop {shop_id} is not one of the shops returned for this token")
    return merge(state, {"selectedShopId": match["id"], "currentStep": STEP_PREVIEW})


def files_listed(state, files: List[Dict[str, Any]]) -> Dict[str, Any]:
    expect_step(state, STEP_PREVIEW)
    return merge(state, {"files": list(files), "error": None})


def files_confirmed(state, files: List[Dict[str, Any]]) -> Dict[str, Any]:
    expect_step(state, STEP_PREVIEW)
    return merge(state, {"files": list(files), "currentStep": STEP_IMPORT, "error": None})


def import_started(state) -> Dict[str, Any]:
    expect_step(state, STEP_IMPORT)
    return merge(state, {
        "error": None,
        "importProgress": 0,
        "importLogs": state["importLogs"] + [f"Starting import of {len(state['files'])} file(s)"],
    })


def import_finished(state, result: Dict[str, Any]) -> Dict[str, Any]:
    expect_step(state, STEP_IMPORT)
    logs = list(state["importLogs"])
    if result.get("message"):
        logs.append(str(result["message"]))
    for err in (result.get("errors") or []):
        logs.append(f"Error: {err}")
    imported = result.get("importedCount")
    logs.append(f"Imported {imported} file(s)" if imported is not None else "Import completed")
    return merge(state, {
        "session": str(result.get("session") or result.get("id") or state["session"]),
        "importProgress": 100,
        "importLogs": logs,
        "isComplete": True,
        "error": None,
    })


def import_failed(state, message: str) -> Dict[str, Any]:
    expect_step(state, STEP_IMPORT)
    return merge(state, {
        "importLogs": state["importLogs"] + [f"Import failed: {message}"],
        "isComplete": False,
        "error": message,
    })


def back(state) -> Dict[str, Any]:
    step = state["currentStep"]
    if step == STEP_DRIVE_FOLDER:
        raise TransitionError("Already on the first step")
    if state["isComplete"]:
        raise TransitionError("Import is complete; restart the wizard instead")
    if step == STEP_PREVIEW and len(state["shops"]) <= 1:
        # the chooser was skipped on the way in
        target = STEP_PRINTIFY_TOKEN
    else:
        target = step - 1
    return merge(state, {"currentStep": target, "error": None})


def restart(state) -> Dict[str, Any]:
    """Full replace with the initial state; only the session key survives."""
    return initial_state(state.get("sessionId"))
