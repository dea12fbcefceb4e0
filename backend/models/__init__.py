"""
Pydantic models for the page builder API.

All data shapes defined here. No imports from db or routes.
"""

from backend.models.page import NodeModel, PageTreeRequest, PageTreeResponse, SavePageResponse

__all__ = [
    "NodeModel",
    "PageTreeRequest",
    "PageTreeResponse",
    "SavePageResponse",
]
