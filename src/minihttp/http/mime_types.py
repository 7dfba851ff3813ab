"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with static files.

MIME types tell the client how to interpret the body, in the form
type/subtype:

    text/html          → render as a web page
    application/json   → structured data
    image/png          → decode as an image
    application/octet-stream → unknown binary, usually "save as"

Only the lower-cased extension is consulted. File contents are never
sniffed, so a PNG renamed to .txt is served as text/plain.
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    # Documents
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".pdf": "application/pdf",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",

    # Media and binaries
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".wasm": "application/wasm",
    ".zip": "application/zip",
}

# "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name with extension.
        default: MIME type for unmapped extensions.
                 Uses application/octet-stream if not specified.

    Returns:
        The MIME type string.

    Examples:
        >>> get_mime_type("/static/logo.PNG")
        'image/png'

        >>> get_mime_type("archive.xyz")
        'application/octet-stream'

        >>> get_mime_type("README", default="text/plain")
        'text/plain'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)
