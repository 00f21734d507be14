"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (Automation,
SLA Monitoring and Notifications).

Architecture Pattern: Modular Monolith
- Each module (automation, sla, notifications) is a bounded context
- Shared kernel contains only generic infrastructure and the tables owned
  by collaborating systems (booking, chat, accounts)

DO NOT add workflow or SLA business logic to the shared kernel.
"""

__version__ = "1.0.0"
