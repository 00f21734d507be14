"""
SLA Monitoring Module
=====================

Bounded Context for service level monitoring of operational entities.

Responsibilities:
- Evaluate active SLA targets on a periodic tick
- Open an incident for each newly breaching entity
- Resolve incidents whose entity no longer breaches
- Let collaborators close incidents as soon as an entity recovers
- Target and incident API for the admin board
"""

__version__ = "1.0.0"
