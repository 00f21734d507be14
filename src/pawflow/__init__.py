"""
Pawflow
=======

Back-office automation engine: trigger-driven workflow runs and SLA
incident monitoring.
"""

__version__ = "1.0.0"
