"""
Backlog Interfaces Layer
========================

Interface adapters (controllers) for the backlog module.
"""

from src.backlog.interfaces.controllers import backlog_router

__all__ = ["backlog_router"]
