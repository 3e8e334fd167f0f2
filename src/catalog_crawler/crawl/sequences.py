"""Sequence retrieval.

Classes:
- SequenceRetriever: Retrieves sequences into the catalog
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import InformationSchemaKey
from .inclusion import InclusionRule, InclusionRuleFilter
from .models import Sequence
from .retrieval import MetadataRetriever, RowLayout

if TYPE_CHECKING:
    from .introspection import MetadataRow
    from .models import SchemaReference

SEQUENCE_LAYOUT = RowLayout("SEQUENCE_CATALOG", "SEQUENCE_SCHEMA", "SEQUENCE_NAME")


class SequenceRetriever(MetadataRetriever):
    """Retrieves sequences that pass the sequence inclusion rule."""

    def retrieve(self) -> int:
        sequence_filter = InclusionRuleFilter(
            InclusionRule.from_patterns(
                self.config.sequence_include, self.config.sequence_exclude
            )
        )
        return self.retrieve_category(
            InformationSchemaKey.SEQUENCES,
            sequence_filter,
            SEQUENCE_LAYOUT,
            self._build_sequence,
            self.catalog.add_sequence,
        )

    @staticmethod
    def _build_sequence(row: MetadataRow, schema: SchemaReference, name: str) -> Sequence:
        sequence = Sequence(schema=schema, name=name)
        sequence.attributes.update(row.attributes())
        return sequence
