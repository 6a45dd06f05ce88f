"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded contexts
(Chat, Backlog, Admin).

Architecture Pattern: Modular Monolith
- Each module (chat, backlog, admin) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from Chat or Backlog to shared kernel.
"""

__version__ = "1.0.0"
