"""pipeline/errors.py"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for every failure raised by the transfer pipeline."""
