"""
Parser package for reference substitution.

Provides the resolution engine for request text: file and environment
variables, system functions and response chaining, each handled by a
pattern parser with a dedicated resolver.
"""

from .base import PatternTokenParser, TokenResolver
from .resolvers import (
    EnvironmentResolver,
    FileVariableResolver,
    ResponseFieldResolver,
    SystemFunctionResolver,
)
from .functions import function_apply, systemFunctions_resolve
from .variables import (
    circularReferences_detect,
    references_extract,
    requestVariables_validate,
    variableReferences_validate,
    variables_resolve,
)
from .responses import (
    ResponseCache,
    referencedRequests_extract,
    responseVariables_contains,
    responses_resolve,
)

__all__ = [
    "PatternTokenParser",
    "TokenResolver",
    "EnvironmentResolver",
    "FileVariableResolver",
    "ResponseFieldResolver",
    "SystemFunctionResolver",
    "function_apply",
    "systemFunctions_resolve",
    "circularReferences_detect",
    "references_extract",
    "requestVariables_validate",
    "variableReferences_validate",
    "variables_resolve",
    "ResponseCache",
    "referencedRequests_extract",
    "responseVariables_contains",
    "responses_resolve",
]
