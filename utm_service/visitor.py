"""
Visitor context: where the client IP and User-Agent of a visit come from.
"""

from typing import Optional

from flask import has_request_context, request

from .models import UserAgentClass


class RequestVisitor:
    """Reads the visitor from the active Flask request."""

    @property
    def ip(self) -> str:
        """Client IP address.

        Forwarding headers are resolved by ProxyFix in front of the app,
        which trusts only the hop added by our own proxy.
        """
        if not has_request_context():
            return ""
        return request.remote_addr or ""

    @property
    def user_agent(self) -> str:
        if not has_request_context():
            return ""
        return request.headers.get('User-Agent', '')


class StaticVisitor:
    """A fixed visitor, for scripts and tests."""

    def __init__(self, ip: Optional[str] = "", user_agent: Optional[str] = ""):
        self.ip = ip or ""
        self.user_agent = user_agent or ""


def classify_user_agent(user_agent: str) -> str:
    """Map a User-Agent header to mobile, tablet or desktop."""
    ua = (user_agent or "").lower()
    if "mobile" in ua:
        return UserAgentClass.MOBILE.value
    if "tablet" in ua:
        return UserAgentClass.TABLET.value
    return UserAgentClass.DESKTOP.value
