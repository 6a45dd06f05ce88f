"""
Admin Module
============

Operator views over chat sessions, message logs and pipeline metrics.

Reuses the chat and backlog repositories; owns no tables.
"""
