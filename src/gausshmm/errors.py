"""Exceptions raised by the estimation core."""


class HMMError(Exception):
    """Base class for gausshmm errors."""


class InvalidDimension(HMMError, ValueError):
    """Inconsistent parameter shapes or an empty observation sequence."""


class InvalidParameter(HMMError, ValueError):
    """A parameter outside its domain, e.g. a non-positive standard deviation."""


class DegenerateNormalization(HMMError, ArithmeticError):
    """A posterior normalizer is log(0): the model gives the data zero probability."""


class DegenerateState(HMMError, ArithmeticError):
    """A state has zero total responsibility, so its M-step update divides by zero."""
