"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from gateway.api import objects

api_router = APIRouter()

# Object routes match every path, so they must stay last
api_router.include_router(objects.router, tags=["objects"])
