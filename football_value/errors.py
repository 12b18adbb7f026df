"""Exceptions raised across the football value engine."""


class FootballValueError(Exception):
    """Base class for engine errors."""


class FeedUnavailableError(FootballValueError):
    """An upstream data or odds feed failed; the caller should defer."""


class ThresholdConfigError(FootballValueError):
    """The market threshold file is missing fields or malformed."""
