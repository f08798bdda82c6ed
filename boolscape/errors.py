#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Exceptions and warnings raised by boolscape.

Compilation and configuration problems are fatal and raised before any
search or solve work starts. Capacity limits are advisory: the search
switches to a bounded exploration and emits a :class:`CapacityWarning`.
"""

__all__ = [
    "CompilationError",
    "ConfigurationError",
    "CapacityWarning",
]


class CompilationError(ValueError):
    """
    A rule set failed validation.

    Parameters
    ----------
    errors : list[str]
        Every problem found in the rule set, in the order they were detected.

    Attributes
    ----------
    errors : list[str]
        As passed to the constructor.
    """

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__('\n'.join(self.errors))


class ConfigurationError(ValueError):
    """Invalid analysis or solver parameters."""


class CapacityWarning(UserWarning):
    """The state space is too large to be explored exhaustively."""
