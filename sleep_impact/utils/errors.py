# sleep_impact/utils/errors.py


class SleepImpactError(Exception):
    """Base class for every failure raised while preparing or analysing sleep data"""


class DataLoadError(SleepImpactError):
    """A source CSV is missing, empty, or does not match the expected schema"""


class InvalidRangeError(SleepImpactError, ValueError):
    """A date range is inverted or a pre/post period has no rows"""


class EmptyResultError(SleepImpactError):
    """The prepared series has no complete rows to hand to the estimator"""
