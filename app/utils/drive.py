import re

_FOLDER_ID_PATTERNS = (
    re.compile(r"/folders/([a-zA-Z0-9_-]+)"),
    re.compile(r"id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
)


def extract_folder_id(url: str | None) -> str | None:
    """Pull the folder id out of the common Google Drive URL shapes."""
    for pattern in _FOLDER_ID_PATTERNS:
        m = pattern.search(url or "")
        if m:
            return m.group(1)
    return None


def is_drive_folder_url(url: str | None) -> bool:
    if not url or not url.strip():
        return False
    if "drive.google.com" not in url:
        return False
    if "/folders/" not in url and "folder" not in url:
        return False
    return extract_folder_id(url) is not None


def format_file_count(count: int) -> str:
    return "1 file" if count == 1 else f"{count} files"
