# src/family_plan/errors.py

"""
Typed errors raised by the todo subsystem.

The boundary layer (CLI, HTTP, ...) maps these to its own messages/status codes.
"""

from __future__ import annotations


class FamilyPlanError(Exception):
    """Base class for all errors raised by family_plan."""


class ValidationError(FamilyPlanError, ValueError):
    """Malformed or missing required fields (documents, patches, inputs)."""


class NotFoundError(FamilyPlanError, LookupError):
    """A referenced todo or member does not exist."""


class StoreError(FamilyPlanError):
    """Any failure coming from the persistence layer."""
