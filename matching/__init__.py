r"""
Matching Package

This package splits free-text person records into fields and canonicalizes
each field. It includes:
- Field rules (recognize + canonicalize one field)
- Matchers and combinators (Literal, Field, Sequence, Alternation)
- The error hierarchy

Usage:
    from matching import FieldRule, Recognizer, Field, Literal, Sequence, compile_matcher

    city = FieldRule(
        name='City',
        recognizers=(Recognizer.pattern(r'[^\W\d_]+'),),
        lookup={'NYC': 'New York City'},
    )
    compiled = compile_matcher(Sequence([Literal(r'in\s+'), Field(city)]))
    compiled.match('in NYC')   # {'City': 'NYC'}
"""

from .errors import (
    NormalizerError,
    FormatError,
    RuleDefinitionError,
    ConfigError,
)

from .field_rules import (
    FieldRule,
    Recognizer,
    RecognizerKind,
    Recognized,
    RuleSet,
    create_rule,
    parse_date,
    render_date,
    template_fields,
)

from .matchers import (
    Literal,
    Field,
    Sequence,
    Alternation,
    Matcher,
    CompiledMatcher,
    compile_matcher,
    matcher_labels,
)

__all__ = [
    # Errors
    'NormalizerError',
    'FormatError',
    'RuleDefinitionError',
    'ConfigError',

    # Field rules
    'FieldRule',
    'Recognizer',
    'RecognizerKind',
    'Recognized',
    'RuleSet',
    'create_rule',
    'parse_date',
    'render_date',
    'template_fields',

    # Matchers
    'Literal',
    'Field',
    'Sequence',
    'Alternation',
    'Matcher',
    'CompiledMatcher',
    'compile_matcher',
    'matcher_labels',
]
