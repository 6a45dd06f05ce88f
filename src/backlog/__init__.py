"""
Backlog Module
==============

Bounded Context for backlog tasks created from triaged problem reports.

Responsibilities:
- Map analysis results into backlog tasks
- Persist tasks (append-only)
- List tasks with filters and report per-severity statistics
"""

__version__ = "1.0.0"
