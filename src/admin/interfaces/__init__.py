"""
Admin Interfaces Layer
======================

Interface adapters (controllers) for the admin dashboard.
"""

from src.admin.interfaces.controllers import admin_router

__all__ = ["admin_router"]
