"""REST backend client."""

from mymoney.services.api.client import AuthenticationError, MyMoneyApiClient, NetworkError

__all__ = ["AuthenticationError", "MyMoneyApiClient", "NetworkError"]
