"""
Notifications Module
====================

Bounded Context for user notifications.

Responsibilities:
- Store notifications in each user's inbox
- Deliver them by email, SMS and push according to user preferences
- Serve as the notification gateway for workflow actions
"""

__version__ = "1.0.0"
