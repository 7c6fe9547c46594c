"""Substitution engine and data sources for layout templates.

This module provides:
- ResolutionContext: Scopes and registries used while resolving
- DataSourceRegistry: Type keyword -> data source lookup
- resolve_variables / resolve_value: $type{key} and #{key} substitution
- check_condition / evaluate_condition: Conditions against a context
"""

from layoutel.el.conditions import check_condition, compile_condition, evaluate_condition
from layoutel.el.context import DEFAULT_MAX_MERGE_DEPTH, ResolutionContext
from layoutel.el.datasources import (
    BUILTIN_DATA_SOURCES,
    DataSource,
    DataSourceRegistry,
    default_data_sources,
)
from layoutel.el.resolver import (
    ResolutionError,
    replace_template_params,
    resolve_value,
    resolve_variables,
)

__all__ = [
    # Conditions
    "check_condition",
    "compile_condition",
    "evaluate_condition",
    # Context
    "DEFAULT_MAX_MERGE_DEPTH",
    "ResolutionContext",
    # Data sources
    "BUILTIN_DATA_SOURCES",
    "DataSource",
    "DataSourceRegistry",
    "default_data_sources",
    # Resolver
    "ResolutionError",
    "replace_template_params",
    "resolve_value",
    "resolve_variables",
]
