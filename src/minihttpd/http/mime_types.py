"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps the extension of a requested path to the Content-Type sent back for
static files.

    ┌──────────────────┬─────────────────────────┐
    │ Extension        │ Content-Type            │
    ├──────────────────┼─────────────────────────┤
    │ .html .htm       │ text/html               │
    │ .css             │ text/css                │
    │ .js              │ text/javascript         │
    │ .png             │ image/png               │
    │ .jpg .jpeg       │ image/jpeg              │
    │ (anything else)  │ text/plain              │
    └──────────────────┴─────────────────────────┘

Matching is anchored at the END of the path and case-insensitive, so
"/a.html.txt" is text/plain and "/LOGO.PNG" is image/png.

=============================================================================
"""

from pathlib import PurePosixPath


MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",      # Modern standard (was application/javascript)
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}

DEFAULT_MIME_TYPE = "text/plain"

# Content type for route bodies and error pages
HTML_MIME_TYPE = "text/html"


def content_type_for(path: str, default: str = DEFAULT_MIME_TYPE) -> str:
    """
    Get the Content-Type for a request path based on its extension.

    Args:
        path: Request path ("/css/style.css"). Only the last segment matters.
        default: Returned when the extension is unknown or missing.

    Examples:
        >>> content_type_for("/style.css")
        'text/css'

        >>> content_type_for("/a.html.txt")
        'text/plain'
    """
    extension = PurePosixPath(path).suffix.lower()
    return MIME_TYPES.get(extension, default)
