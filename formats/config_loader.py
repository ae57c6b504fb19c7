"""
Config Loader Module

Loads field rules and record formats from a YAML file and freezes them into
a NormalizerConfig.

File layout (see config/formats.yaml):

    dispatcher: GeneralInput
    rules:
      - name: City
        recognizers:
          - pattern: '[^\\W\\d_]+(?: [^\\W\\d_]+)*'
        lookup: {LA: Los Angeles, NYC: New York City}
      - name: Date
        recognizers:
          - date: '%m/%d/%Y'
          - date: '%m-%d-%Y'
        date_format: '%-m/%-d/%Y'
    formats:
      - name: Comma
        separator: '\\s*,\\s*'
        layout:
          - field: FirstName
          - field: City
          - field: Date
        template: '{FirstName} {City} {Date}'

Layout elements are ``literal``, ``field``, ``format`` (a format defined
earlier in the file, nested) or ``one_of`` (a list of alternative element
lists). Formats are tried in file order.

Pydantic checks the file's shape; building the rules and matchers then
checks that the pieces fit together.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, Field as SchemaField, ValidationError, field_validator, model_validator

from matching.errors import ConfigError, RuleDefinitionError
from matching.field_rules import FieldRule, Recognizer, DEFAULT_CAPTURE
from matching.matchers import Alternation, Field, Literal, Sequence

from .format_definition import FormatDefinition, LayoutElement, create_format
from .registry import DEFAULT_DISPATCHER_NAME, FormatRegistry, NormalizerConfig


# =============================================================================
# SCHEMA
# =============================================================================

class RecognizerSpec(BaseModel):
    """Either a regex ``pattern`` or a strptime ``date`` format."""
    pattern: Optional[str] = None
    date: Optional[str] = None

    @model_validator(mode='after')
    def exactly_one_kind(self):
        if (self.pattern is None) == (self.date is None):
            raise ValueError("recognizer needs exactly one of 'pattern' or 'date'")
        return self

    def build(self) -> Recognizer:
        if self.pattern is not None:
            return Recognizer.pattern(self.pattern)
        return Recognizer.date(self.date)


class RuleSpec(BaseModel):
    """One field rule."""
    name: str
    recognizers: List[RecognizerSpec] = SchemaField(min_length=1)
    template: Optional[str] = None
    date_format: Optional[str] = None
    lookup: Optional[Dict[str, str]] = None
    capture: str = DEFAULT_CAPTURE
    description: str = ''

    @field_validator('recognizers', mode='before')
    @classmethod
    def plain_strings_are_patterns(cls, v):
        """Allow ``- '[A-Z]+'`` as shorthand for ``- pattern: '[A-Z]+'``."""
        if isinstance(v, list):
            return [{'pattern': item} if isinstance(item, str) else item for item in v]
        return v

    @model_validator(mode='after')
    def exactly_one_assembler(self):
        given = [a for a in (self.template, self.date_format, self.lookup) if a is not None]
        if len(given) != 1:
            raise ValueError(
                f"rule '{self.name}' needs exactly one of template, date_format or lookup"
            )
        return self

    def build(self) -> FieldRule:
        return FieldRule(
            name=self.name,
            recognizers=tuple(r.build() for r in self.recognizers),
            template=self.template,
            date_format=self.date_format,
            lookup=self.lookup,
            capture=self.capture,
            description=self.description,
        )


class LayoutElementSpec(BaseModel):
    """One element of a format layout."""
    literal: Optional[str] = None
    field: Optional[str] = None
    format: Optional[str] = None
    one_of: Optional[List[List['LayoutElementSpec']]] = None
    name: Optional[str] = None

    @model_validator(mode='after')
    def exactly_one_kind(self):
        kinds = [k for k in (self.literal, self.field, self.format, self.one_of) if k is not None]
        if len(kinds) != 1:
            raise ValueError(
                "layout element needs exactly one of literal, field, format or one_of"
            )
        if self.name is not None and self.one_of is None:
            raise ValueError("only one_of elements can be named")
        return self


class FormatSpec(BaseModel):
    """One record format."""
    name: str
    layout: List[LayoutElementSpec] = SchemaField(min_length=1)
    template: str
    separator: Optional[str] = None
    description: str = ''


class NormalizerSpec(BaseModel):
    """Top-level configuration file."""
    dispatcher: str = DEFAULT_DISPATCHER_NAME
    rules: List[RuleSpec] = SchemaField(default_factory=list)
    formats: List[FormatSpec] = SchemaField(min_length=1)


LayoutElementSpec.model_rebuild()


# =============================================================================
# LOADER
# =============================================================================

class ConfigLoader:
    """
    Loads and builds normalizer configuration from YAML files.

    Usage:
        loader = ConfigLoader(Path("config/formats.yaml"))
        config = loader.build()
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to formats.yaml config file
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.spec: Optional[NormalizerSpec] = None

        if config_path:
            self.load(config_path)

    def load(self, config_path: Union[str, Path]) -> NormalizerSpec:
        """
        Load configuration from a YAML file.

        Raises:
            ConfigError: if the file cannot be read, parsed or validated
        """
        config_path = Path(config_path)
        logger.info(f"Loading configuration from: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}")
            raise ConfigError(f"Cannot read {config_path}: {e}") from e

        self.config_path = config_path
        return self.load_dict(data)

    def load_dict(self, data: Any) -> NormalizerSpec:
        """
        Validate an already-parsed configuration.

        Raises:
            ConfigError: if the data does not follow the schema
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping at the top level")

        try:
            self.spec = NormalizerSpec.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise ConfigError(f"Invalid configuration: {e}") from e

        self.config = data
        logger.info(
            f"Loaded {len(self.spec.rules)} rule definitions "
            f"and {len(self.spec.formats)} formats"
        )
        return self.spec

    def build(self) -> NormalizerConfig:
        """
        Turn the loaded configuration into a NormalizerConfig.

        Raises:
            ConfigError: if nothing is loaded
            RuleDefinitionError: if rules and formats do not fit together
        """
        if self.spec is None:
            raise ConfigError("No configuration loaded")

        registry = FormatRegistry(self.spec.dispatcher)
        rules: Dict[str, FieldRule] = {}
        for rule_spec in self.spec.rules:
            if rule_spec.name in rules:
                raise RuleDefinitionError(f"Rule '{rule_spec.name}' defined twice")
            rule = rule_spec.build()
            rules[rule.name] = rule
            registry.register_rule(rule)

        formats: Dict[str, FormatDefinition] = {}
        for format_spec in self.spec.formats:
            embedded: List[FormatDefinition] = []
            layout = [
                self._build_element(e, rules, formats, embedded)
                for e in format_spec.layout
            ]
            fmt = create_format(
                name=format_spec.name,
                layout=layout,
                template=format_spec.template,
                separator=format_spec.separator,
                description=format_spec.description,
                embedded=tuple(embedded),
            )
            formats[fmt.name] = fmt
            registry.register(fmt)

        return registry.build()

    def _build_element(
        self,
        element: LayoutElementSpec,
        rules: Dict[str, FieldRule],
        formats: Dict[str, FormatDefinition],
        embedded: List[FormatDefinition],
    ) -> LayoutElement:
        """
        Build one layout element.

        Formats used inside ``one_of`` branches are lowered to their matchers
        and collected in ``embedded`` so the outer format still renders them
        through their own template.
        """
        if element.literal is not None:
            return Literal(element.literal)

        if element.field is not None:
            if element.field not in rules:
                raise RuleDefinitionError(f"Layout refers to unknown rule '{element.field}'")
            return Field(rules[element.field])

        if element.format is not None:
            if element.format not in formats:
                raise RuleDefinitionError(
                    f"Layout refers to format '{element.format}' "
                    f"before it is defined"
                )
            return formats[element.format]

        alternatives = []
        for branch in element.one_of:
            children = []
            for child in (self._build_element(e, rules, formats, embedded) for e in branch):
                if isinstance(child, FormatDefinition):
                    if child not in embedded:
                        embedded.append(child)
                    child = child.matcher
                children.append(child)
            alternatives.append(children[0] if len(children) == 1 else Sequence(tuple(children)))
        return Alternation(tuple(alternatives), name=element.name)


def load_config(config_path: Union[str, Path]) -> NormalizerConfig:
    """
    Convenience function to load and build a configuration file.

    Args:
        config_path: Path to formats.yaml

    Returns:
        NormalizerConfig ready for a NormalizationPipeline
    """
    return ConfigLoader(Path(config_path)).build()
