"""Resolution context for substitutions and conditions."""

from dataclasses import dataclass, field
from typing import Any

from layoutel.el.datasources import DataSourceRegistry, default_data_sources
from layoutel.expressions.builtins import default_functions
from layoutel.expressions.functions import FunctionRegistry

DEFAULT_MAX_MERGE_DEPTH = 32


@dataclass
class ResolutionContext:
    """Scopes and registries consulted while resolving a template string.

    Attributes:
        attributes: Request-scoped attributes ($attribute{...} and ${...})
        session: Session attributes ($session{...})
        application: Application attributes ($application{...})
        page_session: Page session attributes ($pageSession{...})
        request_parameters: Request parameters ($requestParameter{...})
        template_params: Parameters for #{key} merging and $templateParam{...}
        resource_bundles: Bundle id -> {key: message} for $resource{...}
        data_sources: Type keyword -> data source
        functions: Named functions available to conditions
        max_merge_depth: Limit on recursive #{...} merge passes, also applied
            to conditions nested through $eval{...}
        eval_depth: Number of $eval{...} conditions currently being evaluated
    """

    attributes: dict[str, Any] = field(default_factory=dict)
    session: dict[str, Any] = field(default_factory=dict)
    application: dict[str, Any] = field(default_factory=dict)
    page_session: dict[str, Any] = field(default_factory=dict)
    request_parameters: dict[str, Any] = field(default_factory=dict)
    template_params: dict[str, Any] = field(default_factory=dict)
    resource_bundles: dict[str, Any] = field(default_factory=dict)
    data_sources: DataSourceRegistry = field(default_factory=default_data_sources)
    functions: FunctionRegistry = field(default_factory=default_functions)
    max_merge_depth: int = DEFAULT_MAX_MERGE_DEPTH
    eval_depth: int = field(default=0, init=False, repr=False, compare=False)
