"""Database models."""

from parkpatrol.models.report import Report

__all__ = ["Report"]
