"""
=============================================================================
ROUTER
=============================================================================

Maps (method, path) pairs to handler functions. Matching is EXACT:

    Registered              Request                 Result
    ──────────              ───────                 ──────
    GET  /api/hello         GET  /api/hello         ✓ handler runs
    GET  /api/hello         get  /api/hello         ✓ method is case-normalized
    GET  /api/hello         POST /api/hello         ✗ NoRoute(allowed=GET)
    GET  /api/hello         GET  /api/hello/        ✗ trailing slash matters
    GET  /api/hello         GET  /api/hello?x=1     ✓ query is not part of path

No wildcards, no :params, no prefixes. A dict lookup on a RouteKey is all
the matching there is, so dispatch is O(1) regardless of route count.

=============================================================================
TAGGED DISPATCH RESULT
=============================================================================

A miss is a normal outcome (the server falls back to static files), so it
is returned as a value rather than raised:

    result = router.dispatch(request)

    match result:
        Handled(response)         → send response
        NoRoute(allowed_methods)  → static lookup, 404 or 405

Exceptions from dispatch() always mean a handler is broken.

=============================================================================
THREAD SAFETY
=============================================================================

Workers read the table concurrently. Registration is copy-on-write: the
writer builds a new dict under a lock and swaps the reference in one
assignment. A reader holds whichever dict it grabbed, so it may miss a
route added a moment ago but never sees a half-inserted entry.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .request import HTTPRequest
from .response import HTTPResponse


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass(frozen=True)
class RouteKey:
    """
    Exact lookup key: (METHOD, path).

    Always build keys with RouteKey.of() so the method is upper-cased.
    """

    method: str
    path: str

    @classmethod
    def of(cls, method: str, path: str) -> "RouteKey":
        return cls(method.upper(), path)


@dataclass(frozen=True)
class Route:
    """A registered route."""

    key: RouteKey
    handler: Handler

    @property
    def method(self) -> str:
        return self.key.method

    @property
    def path(self) -> str:
        return self.key.path


@dataclass(frozen=True)
class Handled:
    """A route matched and its handler produced this response."""

    response: HTTPResponse


@dataclass(frozen=True)
class NoRoute:
    """
    No route matched.

    allowed_methods lists the methods registered for the same path, so the
    caller can tell "unknown path" (empty) from "wrong method".
    """

    allowed_methods: tuple[str, ...] = ()


DispatchResult = Union[Handled, NoRoute]


class Router:
    """
    Exact-match HTTP router.

    Usage:
        router = Router()

        @router.get("/api/hello")
        def hello(request):
            return json_response({"message": "Hello, World!"})

        router.register("POST", "/api/echo", echo)

        result = router.dispatch(request)
    """

    def __init__(self):
        self._routes: Dict[RouteKey, Route] = {}
        self._lock = threading.Lock()  # Serializes writers only

    def register(self, method: str, path: str, handler: Handler) -> Route:
        """
        Register a handler for an exact (method, path).

        Registering the same key again replaces the previous handler.

        Args:
            method: HTTP method, any case.
            path: Exact request path, compared verbatim (trailing slash
                  included). Need not start with "/": "*" is the
                  target of "OPTIONS * HTTP/1.1".
            handler: Function taking HTTPRequest, returning HTTPResponse.

        Returns:
            The stored Route.
        """
        route = Route(RouteKey.of(method, path), handler)

        with self._lock:
            routes = dict(self._routes)
            if route.key in routes:
                logger.warning(f"Replacing handler for {route.method} {route.path}")
            routes[route.key] = route
            self._routes = routes  # Single reference swap publishes it

        logger.debug(f"Registered route {route.method} {route.path}")
        return route

    def lookup(self, method: str, path: str) -> Optional[Handler]:
        route = self._routes.get(RouteKey.of(method, path))
        return route.handler if route else None

    def allowed_methods(self, path: str) -> List[str]:
        """
        Get every method registered for a path.

        Used to build the Allow header of a 405 response.
        """
        return sorted(key.method for key in self._routes if key.path == path)

    def dispatch(self, request: HTTPRequest) -> DispatchResult:
        """
        Route a request to its handler.

        Args:
            request: The parsed request.

        Returns:
            Handled(response) on a hit, NoRoute(allowed_methods) on a miss.

        Raises:
            Exception: Whatever the handler raises.
            TypeError: If the handler returns something that is not an
                       HTTPResponse.
        """
        handler = self.lookup(request.method, request.path)

        if handler is None:
            return NoRoute(tuple(self.allowed_methods(request.path)))

        response = handler(request)
        if not isinstance(response, HTTPResponse):
            raise TypeError(
                f"Handler for {request.method} {request.path} returned "
                f"{type(response).__name__}, expected HTTPResponse"
            )
        return Handled(response)

    def routes(self) -> List[Route]:
        """Get all registered routes, sorted by path then method."""
        return sorted(self._routes.values(), key=lambda r: (r.path, r.method))

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, key: RouteKey) -> bool:
        return key in self._routes

    # =========================================================================
    # DECORATOR SYNTAX
    # =========================================================================
    #
    #     @router.get("/api/time")
    #     def current_time(request):
    #         ...
    #
    # The decorator registers the function and returns it unchanged, so it
    # can still be called directly in tests.
    # =========================================================================

    def route(self, path: str, methods: Union[str, List[str]] = "GET") -> Callable[[Handler], Handler]:
        """
        Decorator to register a handler for one or more methods.

        Example:
            @router.route("/api/item", methods=["PUT", "POST"])
            def save_item(request):
                ...
        """
        if isinstance(methods, str):
            methods = [methods]

        def decorator(handler: Handler) -> Handler:
            for method in methods:
                self.register(method, path, handler)
            return handler

        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "POST")

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT")

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE")
