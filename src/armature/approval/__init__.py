"""Approval workflow for risky tool calls."""

from armature.approval.controller import ApprovalController
from armature.approval.models import (
    ApprovalMode,
    ApprovalSurface,
    ConfirmationDeclined,
    ConfirmationKind,
    ConfirmationOutcome,
    ConfirmationRequest,
)

__all__ = [
    "ApprovalController",
    "ApprovalMode",
    "ApprovalSurface",
    "ConfirmationDeclined",
    "ConfirmationKind",
    "ConfirmationOutcome",
    "ConfirmationRequest",
]
