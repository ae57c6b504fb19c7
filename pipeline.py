"""
Normalization Pipeline

Main orchestration module: turns one free-text person record into its
canonical form, or a batch of tagged record groups into a flat list.

Pipeline for a single record:

    raw text
       │
       ▼
    Dispatching ──── no format matches ───► FormatError(text, dispatcher)
       │
       ▼
    MatchedFormat (raw field spans)
       │
       ▼
    FieldResolving ── a rule rejects its span ► FormatError(span, rule)
       │
       ▼
    Assembled (template filled with canonical values)

Nothing is returned on failure: a record is normalized completely or not
at all. The configuration is read-only, so a pipeline can be shared
between threads.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from loguru import logger

from formats.builtin_formats import default_config
from formats.registry import NormalizerConfig
from matching.errors import FormatError


@dataclass
class ParsedRecord:
    """Result of the dispatch step, before any field is canonicalized."""

    source: str
    format_name: str
    captures: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'source': self.source,
            'format': self.format_name,
            'captures': dict(self.captures),
        }


class NormalizationPipeline:
    """
    Normalizes person records against a set of formats.

    Usage:
        pipeline = NormalizationPipeline()
        pipeline.normalize('LA $ 10-4-1974 $ Nolan $ Rhiannon')
        # 'Rhiannon Los Angeles 10/4/1974'

        pipeline.normalize_batch({
            'comma': ['Mckayla, Atlanta, 5/29/1986'],
            'dollar': ['NYC $ 12-1-1962 $ Bruen $ Rigoberto'],
        })
        # ['Mckayla Atlanta 5/29/1986', 'Rigoberto New York City 12/1/1962']
    """

    def __init__(self, config: Optional[NormalizerConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Rules and formats to use (built-in ones by default)
        """
        self.config = config or default_config()

    @property
    def dispatcher(self):
        return self.config.dispatcher

    @property
    def rules(self):
        return self.config.rules

    def parse(self, text: str) -> ParsedRecord:
        """
        Split a record into raw field spans.

        Raises:
            FormatError: if no format accepts the whole text
        """
        found = self.dispatcher.match(text)
        if found is None:
            logger.debug(f"No format matched {text!r}")
            raise FormatError(text, self.dispatcher.name)

        fmt, captures = found
        logger.debug(f"Matched format {fmt.name}: {text!r}")
        return ParsedRecord(source=text, format_name=fmt.name, captures=captures)

    def normalize(self, text: str) -> str:
        """
        Normalize one record.

        Raises:
            FormatError: naming the dispatcher when no format matches, or
                naming the innermost rule that rejected a field
        """
        record = self.parse(text)
        fmt = self.dispatcher.get(record.format_name)
        return fmt.render(record.captures, self.rules)

    def normalize_batch(self, groups: Mapping[Any, Sequence[str]]) -> List[str]:
        """
        Normalize every record of every group.

        Groups are flattened in mapping order and records keep their order
        inside a group; the tags themselves are dropped. The first failing
        record aborts the whole batch.

        Raises:
            FormatError: from the first record that cannot be normalized
        """
        results = []
        for tag, records in groups.items():
            for text in records:
                results.append(self.normalize(text))
            logger.debug(f"Normalized {len(records)} records tagged {tag!r}")
        return results

    def detect_format(self, text: str) -> Optional[str]:
        """Name of the format that accepts ``text``, or None."""
        found = self.dispatcher.match(text)
        return found[0].name if found else None

    def list_formats(self) -> List[Dict[str, Any]]:
        """Describe the registered formats, in priority order."""
        return [
            {
                'name': fmt.name,
                'description': fmt.description,
                'template': fmt.template,
                'fields': fmt.fields,
                'captured': fmt.captured,
            }
            for fmt in self.dispatcher.formats
        ]


# Convenience functions

def normalize(text: str, config: Optional[NormalizerConfig] = None) -> str:
    """
    Quick function to normalize a single record.

    Raises:
        FormatError: if the record (or one of its fields) is invalid
    """
    return NormalizationPipeline(config).normalize(text)


def normalize_all(
    groups: Mapping[Any, Sequence[str]],
    config: Optional[NormalizerConfig] = None,
) -> List[str]:
    """
    Quick function to normalize tagged groups of records.

    Raises:
        FormatError: from the first invalid record
    """
    return NormalizationPipeline(config).normalize_batch(groups)
