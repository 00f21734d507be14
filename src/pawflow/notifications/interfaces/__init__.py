"""
Notification Interfaces Layer
=============================

Contains:
- Controllers: FastAPI route handlers for the inbox and preferences
"""

from pawflow.notifications.interfaces.controllers import notifications_router

__all__ = ["notifications_router"]
