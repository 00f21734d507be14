"""
Automation Interfaces Layer
===========================

FastAPI route handlers for workflow administration.
"""

from pawflow.automation.interfaces.controllers import router as automation_router

__all__ = ["automation_router"]
