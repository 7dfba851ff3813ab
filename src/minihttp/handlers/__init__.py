"""
=============================================================================
REQUEST HANDLERS
=============================================================================

1. StaticFileResolver
   - Serves files from the static root for unrouted GET requests
   - MIME type from the file extension
   - "/" → index.html
   - Path traversal protection (403), no directory listings (404)

2. register_default_routes()
   - Small JSON API: /api/hello, /api/time, /api/status, /api/echo,
     /api/info, /api/data

=============================================================================
USAGE
=============================================================================

    from minihttp.handlers import StaticFileResolver, register_default_routes

    resolver = StaticFileResolver("public")
    response = resolver.resolve("/css/site.css")

    register_default_routes(server)
"""

from .static import StaticFileResolver, ensure_static_root
from .api import register_default_routes

__all__ = [
    "StaticFileResolver",
    "ensure_static_root",
    "register_default_routes",
]
