"""
=============================================================================
STATIC FILE RESOLVER
=============================================================================

Serves files from a single root directory. Only GET requests that no
route claimed ever get here.

    GET /               → <root>/index.html
    GET /css/site.css   → <root>/css/site.css
    GET /docs/          → 404 (directories are never listed)
    GET /../etc/passwd  → 403

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The URL path comes straight from the client, already percent-decoded:

    GET /..%2f..%2fetc/passwd   →   path "/../../etc/passwd"

Joining that onto the root naively escapes it. The defence:

    1. Join the path onto the root
    2. NORMALIZE (resolve() collapses .. and follows symlinks)
    3. Re-resolve the root itself
    4. Require the candidate to sit under the root at a directory
       boundary, using Path.relative_to()

    ┌─────────────────────────────────────────────────────────────────────┐
    │  root      = /srv/static                                             │
    │                                                                      │
    │  /srv/static/css/site.css   relative_to ✓   → serve                  │
    │  /srv/etc/passwd            relative_to ✗   → 403                    │
    │  /srv/static-evil/x         relative_to ✗   → 403                    │
    │                              (a plain startswith() would say ✓!)     │
    └─────────────────────────────────────────────────────────────────────┘

The check runs on every request and its result is never cached: the
inputs are untrusted and the filesystem can change underneath us.
Normalization happens BEFORE any existence check, so probing for files
outside the root always gets the same 403 whether they exist or not.
"""

import logging
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, forbidden, internal_error, not_found
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


SAMPLE_INDEX_HTML = """\
<!DOCTYPE html>
<html>
<head>
    <title>MiniHTTP</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 40px; }
        .header { color: #333; border-bottom: 2px solid #007acc; padding-bottom: 10px; }
        .info { background: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0; }
    </style>
</head>
<body>
    <h1 class="header">MiniHTTP</h1>
    <div class="info">
        <p>Server is running successfully!</p>
        <p>Try these endpoints:</p>
        <ul>
            <li><a href="/api/hello">GET /api/hello</a></li>
            <li><a href="/api/time">GET /api/time</a></li>
            <li><a href="/api/status">GET /api/status</a></li>
        </ul>
    </div>
</body>
</html>
"""


class StaticFileResolver:
    """
    Resolves URL paths to files under a root directory.

    Usage:
        resolver = StaticFileResolver("static")

        response = resolver.resolve("/css/site.css")
        response = resolver.handle(request)    # same, from a request
    """

    def __init__(self, root_dir: str | Path, index_file: str = "index.html"):
        """
        Args:
            root_dir: Directory to serve from. Relative paths are anchored
                      at the current working directory, once, here.
            index_file: File served for "/".
        """
        self._root_dir = Path(root_dir).absolute()
        self.index_file = index_file

    @property
    def root(self) -> Path:
        """The normalized root, re-derived on every access."""
        return self._root_dir.resolve()

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        return self.resolve(request.path)

    def resolve(self, url_path: str) -> HTTPResponse:
        """
        Resolve a URL path to a response.

        Args:
            url_path: Decoded request path, e.g. "/css/site.css".

        Returns:
            200 with the file, 403 if the path escapes the root or the
            file is unreadable, 404 if missing or a directory.
        """
        relative = self.index_file if url_path == "/" else url_path.lstrip("/")
        root = self.root

        # ─────────────────────────────────────────────────────────────────
        # NORMALIZE FIRST
        # ─────────────────────────────────────────────────────────────────
        try:
            candidate = (root / relative).resolve()
        except (OSError, ValueError) as e:
            # Embedded NUL bytes, symlink loops and the like
            logger.debug(f"Unresolvable static path {url_path!r}: {e}")
            return not_found("File Not Found")

        # ─────────────────────────────────────────────────────────────────
        # CONTAINMENT CHECK
        # ─────────────────────────────────────────────────────────────────
        if not is_within(candidate, root):
            logger.warning(f"Path traversal attempt: {url_path!r}")
            return forbidden()

        # ─────────────────────────────────────────────────────────────────
        # EXISTENCE CHECK (directories count as missing)
        # ─────────────────────────────────────────────────────────────────
        try:
            is_file = candidate.is_file()
        except (OSError, ValueError) as e:
            # ENAMETOOLONG and friends mean there is no such file
            logger.debug(f"Unusable static path {url_path!r}: {e}")
            is_file = False

        if not is_file:
            return not_found("File Not Found")

        return self._serve_file(candidate)

    def _serve_file(self, path: Path) -> HTTPResponse:
        try:
            content = path.read_bytes()
        except PermissionError:
            return forbidden()
        except OSError as e:
            logger.error(f"Error serving file {path}: {e}")
            return internal_error()

        return HTTPResponse(HTTPStatus.OK, get_mime_type(path), content)


def is_within(candidate: Path, root: Path) -> bool:
    """
    Check that candidate is root itself or a descendant of it.

    Both paths must already be normalized.
    """
    try:
        candidate.relative_to(root)
    except ValueError:
        return False
    return True


def ensure_static_root(root_dir: str | Path, sample: bool = True) -> bool:
    """
    Create the static root if it does not exist yet.

    When the directory had to be created and sample is True, a starter
    index.html is written into it. An existing directory is left alone.

    Args:
        root_dir: Directory to create.
        sample: Whether to write the sample index.html.

    Returns:
        True if the directory was created.

    Raises:
        NotADirectoryError: If root_dir exists but is a file.
    """
    root = Path(root_dir)

    if root.exists():
        if not root.is_dir():
            raise NotADirectoryError(f"Static root is not a directory: {root}")
        return False

    root.mkdir(parents=True)
    logger.info(f"Created static directory {root.absolute()}")

    if sample:
        (root / "index.html").write_text(SAMPLE_INDEX_HTML, encoding="utf-8")

    return True
