"""
=============================================================================
ACCESS LOG
=============================================================================

One log record per response written, on its own logger so it can be
routed separately from the server's diagnostic output:

    logging.getLogger("minihttp.access").addHandler(file_handler)

Two formats:

    text   127.0.0.1 - - [19/Oct/2026:12:00:00 +0000] "GET /api/hello" 200 29 0.41ms
    json   {"connection_id": "1f2e3d4c", "method": "GET", "path": "/api/hello", ...}
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("minihttp.access")


@dataclass
class AccessLogEntry:
    """
    Structured log entry for one exchange.

    Fields:
        connection_id:  Connection.id, matches the server's debug lines
        method, path:   "-" when the request never parsed
        client_ip:      Peer address
        user_agent:     "-" when absent
        status_code:    Status actually written
        content_length: Body bytes written
        duration_ms:    Accept-to-response time
        timestamp:      Apache-style local time
    """

    connection_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def build(
        cls,
        connection_id: str,
        client_ip: str,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        duration_ms: float,
    ) -> "AccessLogEntry":
        return cls(
            connection_id=connection_id,
            method=request.method if request else "-",
            path=request.path if request else "-",
            client_ip=client_ip or "-",
            user_agent=(request.user_agent if request else "") or "-",
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line, readable by the usual log tools."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_access(entry: AccessLogEntry, log_format: str = "text") -> None:
    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())
