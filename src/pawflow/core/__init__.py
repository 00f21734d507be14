"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from pawflow.core.exceptions import (
    ApplicationException,
    DomainException,
    InvalidStateTransition,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    NotificationDeliveryException,
)
from pawflow.core.clock import Clock, utcnow, as_utc, older_than_cutoff

__all__ = [
    "ApplicationException",
    "DomainException",
    "InvalidStateTransition",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "NotificationDeliveryException",
    "Clock",
    "utcnow",
    "as_utc",
    "older_than_cutoff",
]
