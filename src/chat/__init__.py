"""
Chat Module
===========

Bounded Context for support-widget conversations and their triage.

Responsibilities:
- Open and close chat sessions
- Keep the append-only message log of each session
- Run every inbound message through the triage pipeline: document search,
  agent analysis, response validation and backlog task creation
"""

__version__ = "1.0.0"
