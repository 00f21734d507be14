"""
Automation Module
=================

Bounded Context for trigger-driven workflow automation.

Responsibilities:
- Enqueue one run per active workflow when a trigger fires
- Pick up due runs on a periodic tick, honoring each workflow's delay
- Execute run actions in order and record the outcome
- Workflow administration API and run history
"""

__version__ = "1.0.0"
