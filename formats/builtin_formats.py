"""
Built-in Formats

Field rules and record layouts shipped with the normalizer:

    comma:  "Mckayla, Atlanta, 5/29/1986"              FirstName, City, Date
    dollar: "LA $ 10-4-1974 $ Nolan $ Rhiannon"         City $ Date $ LastName $ FirstName

Both are rendered as "<FirstName> <City> <M/D/YYYY>".
"""

from functools import lru_cache

from matching.field_rules import create_rule

from .format_definition import create_format
from .registry import DEFAULT_DISPATCHER_NAME, FormatRegistry, NormalizerConfig


# Unicode letters only (no digits, no underscore)
_WORD = r'[^\W\d_]+'


# =============================================================================
# FIELD RULES
# =============================================================================

FIRST_NAME_RULE = create_rule(
    name='FirstName',
    patterns=[_WORD],
    lookup={},
    description='Given name, a single alphabetic word',
)

LAST_NAME_RULE = create_rule(
    name='LastName',
    patterns=[_WORD],
    lookup={},
    description='Family name, a single alphabetic word',
)

CITY_RULE = create_rule(
    name='City',
    patterns=[rf'{_WORD}(?: {_WORD})*'],
    lookup={
        'LA': 'Los Angeles',
        'NYC': 'New York City',
    },
    description='City name or a known abbreviation',
)

DATE_RULE = create_rule(
    name='Date',
    date_formats=['%m/%d/%Y', '%m-%d-%Y'],
    date_format='%-m/%-d/%Y',
    description='Birth date, month first',
)


# =============================================================================
# FORMATS
# =============================================================================

DOLLAR_FORMAT = create_format(
    name='Dollar',
    layout=[CITY_RULE, DATE_RULE, LAST_NAME_RULE, FIRST_NAME_RULE],
    separator=r'\s*\$\s*',
    template='{FirstName} {City} {Date}',
    description='City $ birth date $ last name $ first name',
)

COMMA_FORMAT = create_format(
    name='Comma',
    layout=[FIRST_NAME_RULE, CITY_RULE, DATE_RULE],
    separator=r'\s*,\s*',
    template='{FirstName} {City} {Date}',
    description='First name, city, birth date',
)

BUILTIN_FORMATS = (DOLLAR_FORMAT, COMMA_FORMAT)


def register_builtin_formats(registry: FormatRegistry) -> None:
    """Register the built-in formats, in priority order."""
    for fmt in BUILTIN_FORMATS:
        registry.register(fmt)


@lru_cache(maxsize=None)
def default_config() -> NormalizerConfig:
    """The built-in configuration (built once, shared read-only)."""
    registry = FormatRegistry(DEFAULT_DISPATCHER_NAME)
    register_builtin_formats(registry)
    return registry.build()
