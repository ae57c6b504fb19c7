"""
Record Formats

Format definitions, the dispatcher that chooses between them, the built-in
comma and dollar layouts, and YAML configuration loading.
"""

from .format_definition import (
    FormatDefinition,
    create_format,
)
from .registry import (
    DEFAULT_DISPATCHER_NAME,
    DispatchMatcher,
    FormatRegistry,
    NormalizerConfig,
)
from .builtin_formats import (
    FIRST_NAME_RULE,
    LAST_NAME_RULE,
    CITY_RULE,
    DATE_RULE,
    COMMA_FORMAT,
    DOLLAR_FORMAT,
    BUILTIN_FORMATS,
    default_config,
    register_builtin_formats,
)
from .config_loader import (
    ConfigLoader,
    load_config,
)

__all__ = [
    'FormatDefinition',
    'create_format',
    'DEFAULT_DISPATCHER_NAME',
    'DispatchMatcher',
    'FormatRegistry',
    'NormalizerConfig',
    'FIRST_NAME_RULE',
    'LAST_NAME_RULE',
    'CITY_RULE',
    'DATE_RULE',
    'COMMA_FORMAT',
    'DOLLAR_FORMAT',
    'BUILTIN_FORMATS',
    'default_config',
    'register_builtin_formats',
    'ConfigLoader',
    'load_config',
]
