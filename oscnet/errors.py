"""Error taxonomy for oscillator network construction and simulation."""

from __future__ import annotations


class OscillatorNetworkError(Exception):
    """Base class for all oscnet failures."""


class ShapeMismatch(OscillatorNetworkError, ValueError):
    """Dimensions of masses, matrices, state or events disagree."""


class InvalidParameter(OscillatorNetworkError, ValueError):
    """A parameter is non-finite, non-symmetric, or out of range."""


class InvalidEventTable(InvalidParameter):
    """Event rows are malformed or not strictly increasing per variable."""


class InvalidTimeVector(OscillatorNetworkError, ValueError):
    """The requested time vector is empty, non-finite, or decreasing."""


class UnderdeterminedSystem(OscillatorNetworkError, ValueError):
    """Static force balance cannot be satisfied by the available springs."""


class NonDiagonalizable(OscillatorNetworkError, ArithmeticError):
    """System matrix has a defective eigenbasis; use numeric integration."""


class NumericalInstability(OscillatorNetworkError, ArithmeticError):
    """Analytic reconstruction left a significant imaginary residual."""


class NumericalDivergence(OscillatorNetworkError, ArithmeticError):
    """Integrated state left the configured magnitude bound."""
