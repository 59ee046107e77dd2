"""User session package."""

from mymoney.auth.session import SessionManager

__all__ = ["SessionManager"]
