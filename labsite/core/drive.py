from __future__ import annotations

import re

DRIVE_IMAGE_HOST = "https://lh3.googleusercontent.com"

# Checked in order; the first pattern that yields an id wins.
_FILE_ID_PATTERNS = (
    re.compile(r"/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"[?&]id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
)


def extract_drive_file_id(src: str) -> str | None:
    for pattern in _FILE_ID_PATTERNS:
        match = pattern.search(src)
        if match:
            return match.group(1)
    return None


def normalize_drive_image_url(raw: object) -> str:
    """Rewrite Drive share links to the direct image host.

    Drive "view" URLs answer embedded image requests with an HTML
    interstitial, so any URL carrying a recognizable file id is rewritten
    to ``https://lh3.googleusercontent.com/d/{id}``. Blank input returns
    ``""``; URLs without a file id are returned trimmed but otherwise
    unchanged.
    """
    trimmed = "" if raw is None else str(raw).strip()
    if not trimmed:
        return ""

    file_id = extract_drive_file_id(trimmed)
    if not file_id:
        return trimmed
    return f"{DRIVE_IMAGE_HOST}/d/{file_id}"
