"""
Infrastructure Layer
=====================

Low-level technical concerns shared by every module:
- Logging setup
- Collaborator tables (users, appointments, conversations, messages)
- Periodic job scheduling with overlap protection
"""
