"""
Wizard state: a flat camelCase dict, replaced (never mutated) on each transition.
"""
from typing import Any, Dict

STEP_DRIVE_FOLDER = 1
STEP_PRINTIFY_TOKEN = 2
STEP_CHOOSE_SHOP = 3
STEP_PREVIEW = 4
STEP_IMPORT = 5

STEPS = {
    STEP_DRIVE_FOLDER: {"title": "Google Drive Folder", "description": "Share your design folder"},
    STEP_PRINTIFY_TOKEN: {"title": "Printify Token", "description": "Connect your Printify account"},
    STEP_CHOOSE_SHOP: {"title": "Choose Shop", "description": "Pick the destination shop"},
    STEP_PREVIEW: {"title": "Preview Designs", "description": "Review your designs"},
    STEP_IMPORT: {"title": "Import & Process", "description": "Import to Printify"},
}


def initial_state(session_id: str | None = None) -> Dict[str, Any]:
    # fresh containers on every call so no run shares lists with another
    return {
        "sessionId": session_id,
        "currentStep": STEP_DRIVE_FOLDER,
        "folderUrl": "",
        "folderId": "",
        "fileCount": 0,
        "sampleFiles": [],
        "importId": "",
        "apiToken": "",
        "tokenRef": "",
        "shops": [],
        "selectedShopId": None,
        "files": [],
        "session": "",
        "importProgress": 0,
        "importLogs": [],
        "isComplete": False,
        "error": None,
    }


STATE_FIELDS = frozenset(initial_state())


def merge(state: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge: fields absent from ``updates`` are left untouched."""
    unknown = set(updates) - STATE_FIELDS
    if unknown:
        raise KeyError(f"Unknown wizard fields: {', '.join(sorted(unknown))}")
    merged = {**state, **updates}
    if merged["currentStep"] not in STEPS:
        raise ValueError(f"Invalid wizard step: {merged['currentStep']}")
    return merged


def shop_summary(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "title": raw.get("title") or raw.get("name") or "",
        "salesChannel": raw.get("salesChannel") or raw.get("sales_channel") or "",
    }


def sample_file(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": raw.get("id"), "name": raw.get("name") or raw.get("file_name") or ""}
