"""
postdesk: multi-tenant content API.

Data model: User, Client, PostCategory, Post. Admins manage users and
clients; everyone else works inside the client they are scoped to.
"""
