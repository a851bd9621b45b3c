"""Access to per-application server state.

Everything lives on ``app.state`` so several apps (tests) can coexist in one
process.
"""

from starlette.requests import HTTPConnection

from codewith.config.settings import ServerSettings
from codewith.constants import FORWARDED_FOR_HEADER
from codewith.server.store import AdminStore


def get_store(request: HTTPConnection) -> AdminStore:
    store: AdminStore = request.app.state.store
    return store


def get_settings(request: HTTPConnection) -> ServerSettings:
    settings: ServerSettings = request.app.state.settings
    return settings


def client_ip(request: HTTPConnection) -> str | None:
    """Best guess of the device's address.

    ``X-Forwarded-For`` is only honoured behind a trusted proxy; its first
    entry is the original client.
    """
    if get_settings(request).trust_proxy:
        forwarded = request.headers.get(FORWARDED_FOR_HEADER)
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    return request.client.host if request.client else None
