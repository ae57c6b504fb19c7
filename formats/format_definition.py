"""
Format Definition

One accepted textual layout of a person record plus the template used to
reassemble it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from matching.errors import RuleDefinitionError
from matching.field_rules import FieldRule, template_fields
from matching.matchers import (
    CompiledMatcher,
    Field,
    Literal,
    Matcher,
    Sequence,
    compile_matcher,
    matcher_fields,
    matcher_labels,
)


LayoutElement = Union[Matcher, 'FormatDefinition']


@dataclass(frozen=True)
class FormatDefinition:
    """
    A named layout (a Sequence of matchers) and its output template.

    The template uses ``str.format`` placeholders naming fields (or nested
    formats) found in the layout. Captured fields the template does not
    mention are parsed and then dropped.

    Usage:
        comma = FormatDefinition(
            name='Comma',
            layout=[Field(FIRST_NAME_RULE), Literal(r'\\s*,\\s*'), Field(CITY_RULE)],
            template='{FirstName} {City}',
        )
        comma.try_normalize('Mckayla, LA', rules)   # {'Comma': 'Mckayla Los Angeles'}
    """

    name: str
    layout: tuple
    template: str
    description: str = ''
    # Formats whose matchers sit inside a Sequence or Alternation of the layout
    embedded: tuple = ()

    # Computed
    matcher: Sequence = field(init=False, repr=False, compare=False)
    _compiled: CompiledMatcher = field(init=False, repr=False, compare=False)
    _field_rules: Dict[str, FieldRule] = field(init=False, repr=False, compare=False)
    _nested: Dict[str, 'FormatDefinition'] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        """Build the layout matcher and check the template against it."""
        object.__setattr__(self, 'layout', tuple(self.layout))
        object.__setattr__(self, 'embedded', tuple(self.embedded))

        nested: Dict[str, FormatDefinition] = {}
        children = []
        for element in self.layout:
            if isinstance(element, FormatDefinition):
                nested[element.name] = element
                nested.update(element._nested)
                children.append(element.matcher)
            else:
                children.append(element)

        matcher = Sequence(tuple(children), name=self.name)
        labels = matcher_labels(matcher) - {self.name}

        for inner in self.embedded:
            if inner.name not in labels:
                raise RuleDefinitionError(
                    f"Format '{self.name}' embeds '{inner.name}', "
                    f"which its layout does not contain"
                )
            nested[inner.name] = inner
            nested.update(inner._nested)

        unknown = [n for n in template_fields(self.template) if n not in labels]
        if unknown:
            raise RuleDefinitionError(
                f"Format '{self.name}' template refers to {unknown}, "
                f"which its layout does not capture"
            )

        object.__setattr__(self, 'matcher', matcher)
        object.__setattr__(self, '_compiled', compile_matcher(matcher))
        object.__setattr__(self, '_field_rules', matcher_fields(matcher))
        object.__setattr__(self, '_nested', nested)

    @property
    def fields(self) -> List[str]:
        """Names the output template refers to, in order."""
        return template_fields(self.template)

    @property
    def captured(self) -> List[str]:
        """Every label the layout captures, the format's own name excluded."""
        return sorted(matcher_labels(self.matcher) - {self.name})

    @property
    def pattern(self) -> str:
        """Compiled regular expression source."""
        return self._compiled.pattern

    @property
    def field_rules(self) -> Dict[str, FieldRule]:
        return dict(self._field_rules)

    def match(self, text: str) -> Optional[Dict[str, str]]:
        """Split ``text`` into raw field spans, or None."""
        return self._compiled.match(text)

    def render(
        self,
        captures: Mapping[str, str],
        rules: Mapping[str, FieldRule],
    ) -> str:
        """
        Canonicalize each referenced capture and fill the template.

        Raises:
            FormatError: from the innermost rule that rejects its span.
        """
        values = {}
        for name in self.fields:
            span = captures.get(name)
            if span is None:
                # Part of an alternative that did not match
                values[name] = ''
            elif name in self._nested:
                values[name] = self._nested[name].render(captures, rules)
            elif name in self._field_rules:
                values[name] = self._field_rules[name].normalize(span, rules)
            else:
                # Named composite without a rule: its raw span
                values[name] = span
        return self.template.format(**values)

    def try_normalize(
        self,
        text: str,
        rules: Mapping[str, FieldRule],
    ) -> Dict[str, str]:
        """
        Normalize ``text`` with this format alone.

        Returns:
            ``{name: canonical}`` when the layout matches, ``{}`` otherwise
        """
        captures = self.match(text)
        if captures is None:
            return {}
        return {self.name: self.render(captures, rules)}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            'name': self.name,
            'description': self.description,
            'layout': [_element_to_dict(e) for e in self.layout],
            'template': self.template,
            'fields': self.fields,
            'captured': self.captured,
        }
        if self.embedded:
            data['embedded'] = [f.name for f in self.embedded]
        return data


def _element_to_dict(element: LayoutElement) -> Dict[str, Any]:
    if isinstance(element, FormatDefinition):
        return {'format': element.name}
    if isinstance(element, Literal):
        return {'literal': element.pattern}
    if isinstance(element, Field):
        return {'field': element.label}
    key = 'sequence' if isinstance(element, Sequence) else 'one_of'
    data: Dict[str, Any] = {key: [_element_to_dict(c) for c in element.children]}
    if element.name:
        data['name'] = element.name
    return data


def create_format(
    name: str,
    layout: List[LayoutElement],
    template: str,
    separator: Optional[str] = None,
    **kwargs,
) -> FormatDefinition:
    """
    Convenience function to create a format definition.

    When ``separator`` is given, plain FieldRules in ``layout`` are wrapped
    in Field matchers and joined with ``Literal(separator)``; leading and
    trailing whitespace is tolerated.

    Args:
        name: Format name
        layout: Matchers, FieldRules or nested formats
        template: Output template
        separator: Optional separator pattern placed between elements
        **kwargs: Additional format options
    """
    elements: List[LayoutElement] = [
        Field(e) if isinstance(e, FieldRule) else e for e in layout
    ]

    if separator is not None:
        joined: List[LayoutElement] = [Literal(r'\s*')]
        for i, element in enumerate(elements):
            if i:
                joined.append(Literal(separator))
            joined.append(element)
        joined.append(Literal(r'\s*'))
        elements = joined

    return FormatDefinition(name=name, layout=tuple(elements), template=template, **kwargs)

