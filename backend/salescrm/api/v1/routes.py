"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter
from salescrm.api.v1.endpoints import (
    contacts,
    advisors,
    ai,
)

api_router = APIRouter()

api_router.include_router(contacts.router)
api_router.include_router(advisors.router)
api_router.include_router(ai.router)
