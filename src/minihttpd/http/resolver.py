"""
=============================================================================
ROUTE / CONTENT RESOLVER
=============================================================================

Decides what a request path maps to. First match wins:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        RESOLUTION ORDER                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   path in config.routes?                                             │
    │     └── yes → 200, text/html, registered body                       │
    │                                                                      │
    │   config.static_root set?                                            │
    │     └── yes → read static_root + path                                │
    │               ├── readable → 200, file bytes, type by extension     │
    │               └── anything else → 404                                │
    │                                                                      │
    │   otherwise → 404                                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Route matching is exact string comparison: "/about" and "/about/" are
different routes, and "/?x=1" does not match "/".

=============================================================================
STATIC LOOKUPS
=============================================================================

The file location is the static root with the request path appended:

    static_root = "public",  path = "/css/site.css"  →  public/css/site.css

Missing files, directories, permission errors and every other OSError
all collapse into the same 404. The client cannot tell them apart.

With safe_static_paths enabled (the default) the joined path is resolved
first and must stay inside the static root:

    GET /../secret.txt  →  /srv/secret.txt  →  outside /srv/public → 404

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ..config import ServerConfig
from .mime_types import content_type_for
from .response import ResolutionResult, ok_html, not_found
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class Resolver:
    """
    Resolves request paths against one (immutable) ServerConfig.

    Safe to share between threads: it holds no mutable state.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._root: Optional[Path] = None
        if config.static_root is not None and config.safe_static_paths:
            self._root = Path(config.static_root).resolve()

    def resolve(self, path: str) -> ResolutionResult:
        """
        Resolve a request path.

        Args:
            path: Request target exactly as parsed (query string included).

        Returns:
            The ResolutionResult for the path. Never raises.
        """
        body = self.config.routes.get(path)
        if body is not None:
            return ok_html(body)

        if self.config.static_root is not None:
            return self._resolve_static(path)

        return not_found()

    def _resolve_static(self, path: str) -> ResolutionResult:
        file_path = self._static_file(path)
        if file_path is None:
            return not_found()

        try:
            with open(file_path, "rb") as f:
                content = f.read()
        except (OSError, ValueError) as e:
            logger.debug(f"Static lookup failed for {path!r}: {e}")
            return not_found()

        return ResolutionResult(HTTPStatus.OK, content_type_for(path), content)

    def _static_file(self, path: str) -> Optional[str]:
        """
        Filesystem location for a request path, or None if it escapes the root.
        """
        # Literal concatenation: "public" + "/style.css"
        joined = self.config.static_root + path

        if self._root is None:
            return joined

        # NUL bytes make resolve() raise ValueError
        if "\0" in joined:
            return None

        candidate = Path(joined).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            logger.warning(f"Path traversal attempt: {path!r}")
            return None

        return os.fspath(candidate)


def resolve(path: str, config: ServerConfig) -> ResolutionResult:
    """
    Resolve a path against a config in one call.

    Prefer a shared Resolver when resolving many paths with the same config.
    """
    return Resolver(config).resolve(path)
