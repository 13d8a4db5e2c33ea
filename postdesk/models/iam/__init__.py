"""
IAM models: users, clients, the client/user association and bearer tokens.
"""

from .relationships import client_user_association
from .users import User
from .clients import Client
from .tokens import AccessToken

__all__ = [
    "client_user_association",
    "User",
    "Client",
    "AccessToken",
]
