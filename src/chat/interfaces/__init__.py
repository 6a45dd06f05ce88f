"""
Chat Interfaces Layer
=====================

Interface adapters (controllers) for the chat module.
"""

from src.chat.interfaces.controllers import chat_router

__all__ = ["chat_router"]
