"""
Matchers Module

Composable pattern objects used to split a record into field spans.

There are four kinds of matcher:
- Literal:     a fixed separator or anchor, contributes no capture
- Field:       wraps a FieldRule, captures its span under the rule's name
- Sequence:    children matched back to back, captures are the union
- Alternation: first child (in declaration order) that matches wins,
               only its captures are returned

Sequences and alternations may be given a name, in which case the text they
cover is captured under that name as well. Nesting depth is unbounded.

A matcher tree is compiled once into a single regular expression. Every node
gets its own positional group name (``_g0``, ``_g1``, ...), so the same field
may appear in several alternatives without clashing; after a match the tree is
walked again to read back the labelled spans.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import RuleDefinitionError
from .field_rules import FieldRule


@dataclass(frozen=True)
class Literal:
    """A fixed pattern with no named output."""
    pattern: str


@dataclass(frozen=True)
class Field:
    """Captures the span of one field rule under the rule's name."""
    rule: FieldRule

    @property
    def label(self) -> str:
        return self.rule.name


@dataclass(frozen=True)
class Sequence:
    """All children must match contiguously."""
    children: tuple
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(self.children))
        if not self.children:
            raise RuleDefinitionError("A sequence needs at least one child")

        seen: set[str] = set()
        for child in self.children:
            child_labels = matcher_labels(child)
            clash = seen & child_labels
            if clash:
                raise RuleDefinitionError(
                    f"Duplicate capture label(s) {sorted(clash)} "
                    f"in sequence {self.name or '<anonymous>'}"
                )
            seen |= child_labels

        if self.name is not None and self.name in seen:
            raise RuleDefinitionError(
                f"Sequence name '{self.name}' is also used by one of its fields"
            )


@dataclass(frozen=True)
class Alternation:
    """Exactly one child applies; declaration order is priority order."""
    children: tuple
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(self.children))
        if not self.children:
            raise RuleDefinitionError("An alternation needs at least one child")

        if self.name is not None:
            for child in self.children:
                if self.name in matcher_labels(child):
                    raise RuleDefinitionError(
                        f"Alternation name '{self.name}' is also used "
                        f"inside one of its alternatives"
                    )


Matcher = Union[Literal, Field, Sequence, Alternation]


def matcher_labels(matcher: Matcher) -> frozenset[str]:
    """All capture labels a matcher can contribute."""
    if isinstance(matcher, Literal):
        return frozenset()

    if isinstance(matcher, Field):
        return frozenset({matcher.label})

    if isinstance(matcher, (Sequence, Alternation)):
        labels: set[str] = set()
        for child in matcher.children:
            labels |= matcher_labels(child)
        if matcher.name is not None:
            labels.add(matcher.name)
        return frozenset(labels)

    raise TypeError(f"Not a matcher: {matcher!r}")


def matcher_fields(matcher: Matcher) -> dict[str, FieldRule]:
    """Field rules reachable from a matcher, keyed by label."""
    if isinstance(matcher, Field):
        return {matcher.label: matcher.rule}

    found: dict[str, FieldRule] = {}
    if isinstance(matcher, (Sequence, Alternation)):
        for child in matcher.children:
            found.update(matcher_fields(child))
    return found


def embeddable(pattern: str) -> str:
    """
    Make a user pattern safe to splice into a larger expression.

    Named groups become non-capturing groups; named back-references cannot
    survive that and are refused.
    """
    if '(?P=' in pattern:
        raise RuleDefinitionError(
            f"Named back-references cannot be embedded: {pattern!r}"
        )
    return re.sub(r'\(\?P<[^>]+>', '(?:', pattern)


@dataclass
class _Node:
    """A matcher plus the regex group that spans it."""
    matcher: Matcher
    group: str
    children: list = field(default_factory=list)


class CompiledMatcher:
    """
    A matcher tree compiled into one regular expression.

    Usage:
        compiled = compile_matcher(Sequence([Field(first), Literal(r'\\s*,\\s*'), Field(city)]))
        compiled.match('Mckayla, Atlanta')   # {'FirstName': 'Mckayla', 'City': 'Atlanta'}
        compiled.match('Mckayla - Atlanta')  # None
    """

    def __init__(self, matcher: Matcher):
        self.matcher = matcher
        self._group_count = 0
        self._root, source = self._build(matcher)
        self.pattern = source

        try:
            self.regex = re.compile(source)
        except re.error as e:
            raise RuleDefinitionError(f"Matcher does not compile: {e}") from e

    def _next_group(self) -> str:
        group = f"_g{self._group_count}"
        self._group_count += 1
        return group

    def _build(self, matcher: Matcher) -> tuple[_Node, str]:
        node = _Node(matcher=matcher, group=self._next_group())

        if isinstance(matcher, Literal):
            inner = matcher.pattern

        elif isinstance(matcher, Field):
            inner = embeddable(matcher.rule.capture)

        elif isinstance(matcher, Sequence):
            parts = []
            for child in matcher.children:
                child_node, child_source = self._build(child)
                node.children.append(child_node)
                parts.append(child_source)
            inner = ''.join(parts)

        elif isinstance(matcher, Alternation):
            parts = []
            for child in matcher.children:
                child_node, child_source = self._build(child)
                node.children.append(child_node)
                parts.append(child_source)
            inner = '|'.join(parts)

        else:
            raise TypeError(f"Not a matcher: {matcher!r}")

        return node, f"(?P<{node.group}>{inner})"

    def match(self, text: str) -> Optional[dict[str, str]]:
        """
        Match ``text`` in full.

        Returns:
            Label → raw substring for the branch that matched, or None
        """
        found = self.regex.fullmatch(text)
        if found is None:
            return None

        captures: dict[str, str] = {}
        self._collect(self._root, found, captures)
        return captures

    def match_alternative(self, text: str) -> Optional[tuple[int, dict[str, str]]]:
        """
        Match an alternation in full and report which alternative won.

        Labels alone cannot tell, since an alternative may contain another
        alternative's name (a nested format, for instance).

        Returns:
            (index of the winning child, captures) or None
        """
        if not isinstance(self.matcher, Alternation):
            raise TypeError(f"Not an alternation: {self.matcher!r}")

        found = self.regex.fullmatch(text)
        if found is None:
            return None

        captures: dict[str, str] = {}
        self._collect(self._root, found, captures)
        for index, child in enumerate(self._root.children):
            if found.group(child.group) is not None:
                return index, captures

        raise RuntimeError(f"Alternation matched {text!r} without a winning child")

    def _collect(self, node: _Node, found: re.Match, captures: dict[str, str]) -> None:
        matcher = node.matcher
        span = found.group(node.group)

        if isinstance(matcher, Field):
            captures[matcher.label] = span
            return

        if isinstance(matcher, Sequence):
            for child in node.children:
                self._collect(child, found, captures)

        elif isinstance(matcher, Alternation):
            for child in node.children:
                if found.group(child.group) is not None:
                    self._collect(child, found, captures)
                    break

        if getattr(matcher, 'name', None) is not None:
            captures[matcher.name] = span


def compile_matcher(matcher: Matcher) -> CompiledMatcher:
    """Compile a matcher tree."""
    return CompiledMatcher(matcher)
