"""
Errors Module

Every failure raised by the normalizer derives from ``NormalizerError``.

- ``FormatError`` is the only runtime rejection: the input (or one of its
  fields) did not fit the named format or rule.
- ``RuleDefinitionError`` and ``ConfigError`` are raised while the rule set
  is being built, before any input is seen.
"""


class NormalizerError(Exception):
    """Base error for this package."""


class FormatError(NormalizerError):
    """
    Raised when a subject string is not a valid instance of a format.

    ``format_name`` is the dispatcher's name for whole-record failures and
    the rule's name for field-level failures.
    """

    def __init__(self, subject: str, format_name: str):
        self.subject = subject
        self.format_name = format_name
        super().__init__(f"{subject} is not a valid {format_name}")

    def __reduce__(self):
        return (self.__class__, (self.subject, self.format_name))


class RuleDefinitionError(NormalizerError, ValueError):
    """Raised when a rule, matcher or format is constructed inconsistently."""


class ConfigError(NormalizerError):
    """Raised when a configuration file cannot be read or validated."""
