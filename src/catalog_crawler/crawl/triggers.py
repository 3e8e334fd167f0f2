"""Trigger retrieval.

Triggers are attached to the table named by ``EVENT_OBJECT_TABLE``. Rows
for tables that are not in the catalog are dropped, as are repeated rows
for a trigger already attached to its table.

Classes:
- TriggerRetriever: Retrieves triggers and attaches them to their tables
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger

from .constants import (
    ActionOrientationType,
    ConditionTimingType,
    EventManipulationType,
    InformationSchemaKey,
)
from .inclusion import IncludeAll, InclusionRuleFilter
from .models import TableKey, Trigger
from .retrieval import MetadataRetriever, RowLayout
from .utils import is_blank

if TYPE_CHECKING:
    from .introspection import MetadataRow
    from .models import SchemaReference

# Logger
_logger = get_logger("catalog_crawler.triggers")

TRIGGER_LAYOUT = RowLayout("TRIGGER_CATALOG", "TRIGGER_SCHEMA", "TRIGGER_NAME")


class TriggerRetriever(MetadataRetriever):
    """Retrieves triggers for tables already in the catalog."""

    def retrieve(self) -> int:
        return self.retrieve_category(
            InformationSchemaKey.TRIGGERS,
            InclusionRuleFilter(IncludeAll()),
            TRIGGER_LAYOUT,
            self._build_trigger,
            self._attach,
        )

    def _build_trigger(
        self, row: MetadataRow, schema: SchemaReference, name: str
    ) -> Trigger | None:
        table_name = row.get_string("EVENT_OBJECT_TABLE")
        if is_blank(table_name):
            return None
        event_schema = row.get_string("EVENT_OBJECT_SCHEMA")
        if is_blank(event_schema):
            table_schema = schema
        else:
            found = self.catalog.lookup_schema(
                row.get_string("EVENT_OBJECT_CATALOG"), event_schema
            )
            if found is None:
                _logger.debug("Cannot find schema %s for trigger %s", event_schema, name)
                return None
            table_schema = found
        table_key = TableKey.of(table_schema, table_name or "")
        table = self.catalog.lookup_table(table_key, include_filtered=True)
        if table is None or table.is_partial:
            _logger.debug("Cannot find table %s for trigger %s", table_key, name)
            return None

        trigger = Trigger(
            name=name,
            table=table_key,
            event_manipulation_type=row.get_enum(
                "EVENT_MANIPULATION", EventManipulationType.UNKNOWN
            ),
            action_order=row.get_int("ACTION_ORDER"),
            action_condition=row.get_string("ACTION_CONDITION"),
            action_statement=row.get_string("ACTION_STATEMENT"),
            action_orientation=row.get_enum("ACTION_ORIENTATION", ActionOrientationType.UNKNOWN),
            condition_timing=row.get_enum("CONDITION_TIMING", ConditionTimingType.UNKNOWN),
        )
        trigger.attributes.update(row.attributes())
        return trigger

    def _attach(self, trigger: Trigger) -> None:
        table = self.catalog.lookup_table(trigger.table, include_filtered=True)
        if table is None:
            return
        if any(existing.name == trigger.name for existing in table.triggers):
            _logger.debug("Trigger %s is already attached", trigger.full_name)
            return
        table.triggers.append(trigger)
