"""
Top-level router for version 1 of the API.

This router aggregates the domain routers (auth, profiles, messaging,
service requests, payments...) under a unified prefix.  When new
domains are introduced, update this file to include their routers.
"""

from fastapi import APIRouter

from .endpoints import (
    audit,
    auth,
    conversations,
    feedback,
    messages,
    payments,
    professionals,
    profiles,
    service_requests,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
router.include_router(professionals.router, prefix="/professionals", tags=["professionals"])
router.include_router(conversations.router, prefix="/conversations", tags=["conversations"])
# Legacy message routes kept for clients written against the first API.
router.include_router(messages.router, prefix="/messages", tags=["messages"])
router.include_router(service_requests.router, prefix="/service-requests", tags=["service-requests"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
