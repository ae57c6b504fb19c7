"""
Field Rules Module

A field rule knows how to recognize one atomic field of a person record
(first name, city, birth date, ...) and how to turn a recognized value into
its canonical display form.

Recognition:
- Recognizers are tried in declaration order; the first one that accepts
  the whole substring wins.
- A recognizer is either a regular expression (must match the full string)
  or a ``strptime`` date format (must parse the full string).

Canonicalization (exactly one strategy per rule):
- lookup:      "NYC" → "New York City", unknown values pass through
- template:    "{Month}/{Day}/{Year}" filled from the recognizer's named
               groups, each group re-normalized by the rule of the same name
- date_format: parsed date rendered with strftime ("%-m/%-d/%Y" → 5/29/1986)
"""

import re
import string
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Iterator, Optional

from loguru import logger

from .errors import FormatError, RuleDefinitionError


# Span used when a rule is embedded in a larger layout. The captured text is
# re-recognized afterwards, so it only has to find the field boundaries.
DEFAULT_CAPTURE = r'.+?'

# glibc-style "no padding" directives, rendered portably
_NO_PAD_DIRECTIVE = re.compile(r'%-([dmHIMSjy])')


class RecognizerKind(Enum):
    """How a recognizer decides whether a substring belongs to the field."""
    PATTERN = 'pattern'
    DATE = 'date'


@dataclass(frozen=True)
class Recognized:
    """
    A substring accepted by a field rule.

    ``groups`` holds the named sub-captures of a pattern recognizer;
    ``date`` holds the parsed value of a date recognizer.
    """
    raw: str
    groups: Mapping[str, Optional[str]] = field(default_factory=dict)
    date: Optional[datetime] = None
    recognizer: str = ''


@dataclass(frozen=True)
class Recognizer:
    """One way of recognizing a field: a regex or a strptime format."""
    kind: RecognizerKind
    source: str
    _compiled: Optional[re.Pattern] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if not self.source:
            raise RuleDefinitionError("Recognizer source must not be empty")
        if self.kind is RecognizerKind.PATTERN:
            try:
                object.__setattr__(self, '_compiled', re.compile(self.source))
            except re.error as e:
                raise RuleDefinitionError(
                    f"Invalid recognizer pattern '{self.source}': {e}"
                ) from e

    @classmethod
    def pattern(cls, source: str) -> 'Recognizer':
        return cls(RecognizerKind.PATTERN, source)

    @classmethod
    def date(cls, date_format: str) -> 'Recognizer':
        return cls(RecognizerKind.DATE, date_format)

    @property
    def group_names(self) -> frozenset[str]:
        """Named groups a pattern recognizer exposes (empty for dates)."""
        if self._compiled is None:
            return frozenset()
        return frozenset(self._compiled.groupindex)

    def attempt(self, raw: str) -> Optional[Recognized]:
        """Try this recognizer against the whole of ``raw``."""
        if self.kind is RecognizerKind.DATE:
            parsed = parse_date(raw, self.source)
            if parsed is None:
                return None
            return Recognized(raw=raw, date=parsed, recognizer=self.source)

        match = self._compiled.fullmatch(raw)
        if match is None:
            return None
        return Recognized(
            raw=raw,
            groups=match.groupdict(),
            recognizer=self.source,
        )


@dataclass(frozen=True)
class FieldRule:
    """
    Definition of one field: its recognizers and its single assembler.

    Usage:
        city = FieldRule(
            name='City',
            recognizers=(Recognizer.pattern(r'[^\\W\\d_]+'),),
            lookup={'LA': 'Los Angeles'},
        )
        city.normalize('LA', rules)   # 'Los Angeles'
    """
    name: str
    recognizers: tuple[Recognizer, ...]
    template: Optional[str] = None
    date_format: Optional[str] = None
    lookup: Optional[Mapping[str, str]] = None
    capture: str = DEFAULT_CAPTURE
    description: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'recognizers', tuple(self.recognizers))
        if self.lookup is not None:
            object.__setattr__(self, 'lookup', dict(self.lookup))

        if not self.name or not self.name.isidentifier():
            raise RuleDefinitionError(
                f"Rule name must be a valid identifier, got {self.name!r}"
            )
        if not self.recognizers:
            raise RuleDefinitionError(
                f"Rule '{self.name}' must define at least one recognizer"
            )

        assemblers = [
            a for a in (self.template, self.date_format, self.lookup)
            if a is not None
        ]
        if len(assemblers) != 1:
            raise RuleDefinitionError(
                f"Rule '{self.name}' must define exactly one of "
                f"template, date_format or lookup (got {len(assemblers)})"
            )

        if self.template is not None:
            self._check_template()
        if self.date_format is not None:
            if any(r.kind is not RecognizerKind.DATE for r in self.recognizers):
                raise RuleDefinitionError(
                    f"Rule '{self.name}' renders a date_format, "
                    f"so every recognizer must be a date format"
                )

    def _check_template(self) -> None:
        """Every template placeholder must be a group of every recognizer."""
        wanted = set(template_fields(self.template))
        for recognizer in self.recognizers:
            if recognizer.kind is RecognizerKind.DATE:
                raise RuleDefinitionError(
                    f"Rule '{self.name}' uses a template, "
                    f"which date recognizers cannot fill"
                )
            missing = wanted - recognizer.group_names
            if missing:
                raise RuleDefinitionError(
                    f"Rule '{self.name}': recognizer '{recognizer.source}' "
                    f"has no group(s) {sorted(missing)} used by its template"
                )

    @property
    def assembler(self) -> str:
        """Name of the canonicalization strategy."""
        if self.template is not None:
            return 'template'
        if self.date_format is not None:
            return 'date_format'
        return 'lookup'

    def recognize(self, raw: str) -> Optional[Recognized]:
        """
        Return the first recognizer's result for ``raw``, or None.

        None is the ordinary "no match" outcome; nothing is raised here.
        """
        for recognizer in self.recognizers:
            result = recognizer.attempt(raw)
            if result is not None:
                return result
        return None

    def canonicalize(self, value: Recognized, rules: Mapping[str, 'FieldRule']) -> str:
        """Render a recognized value with this rule's assembler."""
        if self.lookup is not None:
            return self.lookup.get(value.raw, value.raw)

        if self.date_format is not None:
            return render_date(value.date, self.date_format)

        parts = {}
        for name in template_fields(self.template):
            sub = value.groups.get(name) or ''
            sub_rule = rules.get(name)
            if sub_rule is not None and sub_rule is not self:
                parts[name] = sub_rule.normalize(sub, rules)
            else:
                parts[name] = sub
        return self.template.format(**parts)

    def normalize(self, raw: str, rules: Mapping[str, 'FieldRule']) -> str:
        """
        Recognize and canonicalize ``raw``.

        Raises:
            FormatError: if no recognizer accepts ``raw``.
        """
        value = self.recognize(raw)
        if value is None:
            logger.debug(f"Rule '{self.name}' rejected {raw!r}")
            raise FormatError(raw, self.name)
        return self.canonicalize(value, rules)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            'name': self.name,
            'recognizers': [
                {r.kind.value: r.source} for r in self.recognizers
            ],
            'capture': self.capture,
        }
        if self.template is not None:
            data['template'] = self.template
        elif self.date_format is not None:
            data['date_format'] = self.date_format
        else:
            data['lookup'] = dict(self.lookup)
        if self.description:
            data['description'] = self.description
        return data


class RuleSet(Mapping):
    """
    Read-only name → FieldRule mapping.

    Template assemblers resolve their sub-captures through it, so a rule
    such as ``Date`` can delegate ``Month`` to a separate ``Month`` rule.
    """

    def __init__(self, rules: Iterable[FieldRule] = ()):
        self._rules: dict[str, FieldRule] = {}
        for rule in rules:
            existing = self._rules.get(rule.name)
            if existing is not None and existing is not rule and existing != rule:
                raise RuleDefinitionError(
                    f"Two different rules are named '{rule.name}'"
                )
            self._rules[rule.name] = rule

    def __getitem__(self, name: str) -> FieldRule:
        return self._rules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({list(self._rules)})"


def template_fields(template: str) -> list[str]:
    """
    List the placeholder names of a ``str.format`` template, in order.

    Only bare names are allowed; "{0}" or "{}" are rejected.
    """
    names = []
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as e:
        raise RuleDefinitionError(f"Invalid template {template!r}: {e}") from e

    for _, name, _, _ in parsed:
        if name is None:
            continue
        if not name.isidentifier():
            raise RuleDefinitionError(
                f"Template {template!r} must use named placeholders, got {{{name}}}"
            )
        if name not in names:
            names.append(name)
    return names


def parse_date(value: str, date_format: str) -> Optional[datetime]:
    """Parse ``value`` with ``date_format``; None when it does not fit."""
    try:
        return datetime.strptime(value, date_format)
    except ValueError:
        return None


def render_date(value: datetime, date_format: str) -> str:
    """strftime with portable support for %-d, %-m and friends."""
    fmt = _NO_PAD_DIRECTIVE.sub(
        lambda m: str(int(value.strftime('%' + m.group(1)))),
        date_format,
    )
    return value.strftime(fmt)


def create_rule(
    name: str,
    patterns: Optional[list[str]] = None,
    date_formats: Optional[list[str]] = None,
    **kwargs,
) -> FieldRule:
    """
    Convenience function to create a field rule.

    Pattern recognizers are tried before date recognizers.

    Args:
        name: Field name (also the capture label)
        patterns: Regex recognizers
        date_formats: strptime recognizers
        **kwargs: template / date_format / lookup / capture / description
    """
    recognizers = [Recognizer.pattern(p) for p in patterns or []]
    recognizers += [Recognizer.date(f) for f in date_formats or []]
    return FieldRule(name=name, recognizers=tuple(recognizers), **kwargs)
