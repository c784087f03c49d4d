"""
This module re-exports the EmployeeIntegration model from the database package for use in connector-related code.
"""

from database.models import EmployeeIntegration  # noqa: F401

__all__ = ["EmployeeIntegration"]
