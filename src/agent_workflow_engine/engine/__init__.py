"""Workflow engine components.

Provides:
- Settings loaded from .env
- Structured logging
- A small CLI surface
- Workflow loading, validation and agent-driven execution
"""
