"""
Format Registry

Collects field rules and format definitions at start-up and freezes them
into a NormalizerConfig: the rule set plus the dispatch matcher that tries
every registered format in turn.

There is no process-wide registry; build a config once and pass it to
whatever needs it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from matching.errors import RuleDefinitionError
from matching.field_rules import FieldRule, RuleSet
from matching.matchers import Alternation, CompiledMatcher, compile_matcher

from .format_definition import FormatDefinition


DEFAULT_DISPATCHER_NAME = 'GeneralInput'


@dataclass(frozen=True)
class DispatchMatcher:
    """
    Alternation over every registered format.

    Formats are tried in registration order; the first one whose layout
    matches the whole input wins.
    """

    name: str
    formats: Tuple[FormatDefinition, ...]

    _compiled: CompiledMatcher = field(init=False, repr=False, compare=False)
    _by_name: Dict[str, FormatDefinition] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'formats', tuple(self.formats))
        if not self.formats:
            raise RuleDefinitionError(
                f"Dispatcher '{self.name}' needs at least one format"
            )

        by_name: Dict[str, FormatDefinition] = {}
        for fmt in self.formats:
            if fmt.name in by_name:
                raise RuleDefinitionError(f"Format '{fmt.name}' registered twice")
            by_name[fmt.name] = fmt

        matcher = Alternation(tuple(f.matcher for f in self.formats), name=self.name)
        object.__setattr__(self, '_compiled', compile_matcher(matcher))
        object.__setattr__(self, '_by_name', by_name)

    @property
    def format_names(self) -> List[str]:
        return [f.name for f in self.formats]

    def get(self, name: str) -> Optional[FormatDefinition]:
        """Get a format by name."""
        return self._by_name.get(name)

    def match(self, text: str) -> Optional[Tuple[FormatDefinition, Dict[str, str]]]:
        """
        Find the format that accepts ``text``.

        Returns:
            (format, raw captures) or None when no format matches
        """
        found = self._compiled.match_alternative(text)
        if found is None:
            return None

        index, captures = found
        return self.formats[index], captures


@dataclass(frozen=True)
class NormalizerConfig:
    """Everything the pipeline needs, built once and shared read-only."""

    rules: RuleSet
    dispatcher: DispatchMatcher

    @property
    def formats(self) -> Tuple[FormatDefinition, ...]:
        return self.dispatcher.formats

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'dispatcher': self.dispatcher.name,
            'rules': [rule.to_dict() for rule in self.rules.values()],
            'formats': [fmt.to_dict() for fmt in self.formats],
        }


class FormatRegistry:
    """
    Builder for a NormalizerConfig.

    Usage:
        registry = FormatRegistry()
        registry.register_rule(MONTH_RULE)
        registry.register(COMMA_FORMAT)
        registry.register(DOLLAR_FORMAT)
        config = registry.build()
    """

    def __init__(self, dispatcher_name: str = DEFAULT_DISPATCHER_NAME):
        self.dispatcher_name = dispatcher_name
        self._rules: Dict[str, FieldRule] = {}
        self._formats: Dict[str, FormatDefinition] = {}

    def register_rule(self, rule: FieldRule, overwrite: bool = False) -> None:
        """
        Register a field rule.

        Rules used by a format are registered with it automatically; this is
        for helper rules reached only through template sub-captures.

        Raises:
            RuleDefinitionError: if a different rule has the same name and
                overwrite=False
        """
        existing = self._rules.get(rule.name)
        if existing is not None and existing != rule and not overwrite:
            raise RuleDefinitionError(f"Rule '{rule.name}' already registered")

        self._rules[rule.name] = rule
        logger.debug(f"Registered rule: {rule.name}")

    def register(self, fmt: FormatDefinition, overwrite: bool = False) -> None:
        """
        Register a format definition and the rules its layout uses.

        Raises:
            RuleDefinitionError: if the format already exists and
                overwrite=False
        """
        if fmt.name in self._formats and not overwrite:
            raise RuleDefinitionError(f"Format '{fmt.name}' already registered")

        for rule in fmt.field_rules.values():
            self.register_rule(rule)

        self._formats[fmt.name] = fmt
        logger.debug(f"Registered format: {fmt.name}")

    def get(self, name: str) -> Optional[FormatDefinition]:
        return self._formats.get(name)

    def get_rule(self, name: str) -> Optional[FieldRule]:
        return self._rules.get(name)

    def list_names(self) -> List[str]:
        """List all registered format names, in priority order."""
        return list(self._formats)

    def build(self) -> NormalizerConfig:
        """Freeze the registered rules and formats."""
        config = NormalizerConfig(
            rules=RuleSet(self._rules.values()),
            dispatcher=DispatchMatcher(
                name=self.dispatcher_name,
                formats=tuple(self._formats.values()),
            ),
        )
        logger.debug(
            f"Built dispatcher '{self.dispatcher_name}' with "
            f"{len(self._formats)} formats and {len(self._rules)} rules"
        )
        return config
