"""
schemalens: column lineage and table usage for T-SQL object definitions.
"""
from .generator import (
    generate_function_definition,
    generate_procedure_definition,
    generate_view_definition,
)
from .parser import (
    parse_function_return_type,
    parse_routine_definition,
    parse_routine_parameters,
    parse_view_definition,
)
from .schema_index import build_schema_index, get_schema_index

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "build_schema_index",
    "generate_function_definition",
    "generate_procedure_definition",
    "generate_view_definition",
    "get_schema_index",
    "parse_function_return_type",
    "parse_routine_definition",
    "parse_routine_parameters",
    "parse_view_definition",
]
