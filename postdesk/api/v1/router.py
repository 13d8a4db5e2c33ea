"""
API router assembly.

Every endpoint module handles its own authentication, since registration and
login are public.
"""

from fastapi import APIRouter

from postdesk.api.v1.endpoints import auth, clients, post_categories, posts, users

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(clients.router)
api_router.include_router(post_categories.router)
api_router.include_router(posts.router)
