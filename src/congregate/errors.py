"""Failures raised by the meeting, attendance and participation services.

The web layer maps :class:`NotFoundError` to 404 and every other
:class:`CongregateError` to 400.
"""

from __future__ import annotations


class CongregateError(Exception):
    pass


class NotFoundError(CongregateError):
    """Meeting, template, community or member does not exist."""


class InvalidStateError(CongregateError):
    """Operation is not valid for the meeting's current kind."""


class TemporalConstraintError(CongregateError):
    """Next occurrence is not in the future, already exists, or the cap was reached."""


class ValidationFailureError(CongregateError):
    """Input (usually recurrence parameters) is insufficient or malformed."""
