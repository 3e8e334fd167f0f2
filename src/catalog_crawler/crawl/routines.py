"""Function and procedure retrieval.

Classes:
- RoutineRetriever: Retrieves functions and procedures into the catalog
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger

from .constants import FunctionReturnType, InformationSchemaKey, ProcedureReturnType
from .inclusion import InclusionRule, InclusionRuleFilter
from .models import Function, Procedure
from .retrieval import MetadataRetriever, RowLayout

if TYPE_CHECKING:
    from .introspection import MetadataRow
    from .models import SchemaReference

# Logger
_logger = get_logger("catalog_crawler.routines")

FUNCTION_LAYOUT = RowLayout("FUNCTION_CAT", "FUNCTION_SCHEM", "FUNCTION_NAME")
PROCEDURE_LAYOUT = RowLayout("PROCEDURE_CAT", "PROCEDURE_SCHEM", "PROCEDURE_NAME")


class RoutineRetriever(MetadataRetriever):
    """Retrieves functions and procedures that pass the routine inclusion rule."""

    @property
    def routine_filter(self) -> InclusionRuleFilter:
        return InclusionRuleFilter(
            InclusionRule.from_patterns(self.config.routine_include, self.config.routine_exclude)
        )

    def retrieve_functions(self) -> int:
        return self.retrieve_category(
            InformationSchemaKey.FUNCTIONS,
            self.routine_filter,
            FUNCTION_LAYOUT,
            self._build_function,
            self.catalog.add_routine,
        )

    def retrieve_procedures(self) -> int:
        return self.retrieve_category(
            InformationSchemaKey.PROCEDURES,
            self.routine_filter,
            PROCEDURE_LAYOUT,
            self._build_procedure,
            self.catalog.add_routine,
        )

    @staticmethod
    def _build_function(row: MetadataRow, schema: SchemaReference, name: str) -> Function:
        _logger.debug("Retrieving function: %s.%s", schema, name)
        function = Function(
            schema=schema,
            name=name,
            specific_name=row.get_string("SPECIFIC_NAME") or "",
            remarks=row.get_string("REMARKS"),
            return_type=FunctionReturnType.from_id(row.get("FUNCTION_TYPE")),
        )
        function.attributes.update(row.attributes())
        return function

    @staticmethod
    def _build_procedure(row: MetadataRow, schema: SchemaReference, name: str) -> Procedure:
        _logger.debug("Retrieving procedure: %s.%s", schema, name)
        procedure = Procedure(
            schema=schema,
            name=name,
            specific_name=row.get_string("SPECIFIC_NAME") or "",
            remarks=row.get_string("REMARKS"),
            return_type=ProcedureReturnType.from_id(row.get("PROCEDURE_TYPE")),
        )
        procedure.attributes.update(row.attributes())
        return procedure
