"""
Variable resolution over request text.

Three whole-string passes, in order:
1. `{{name}}`        environment first, then file variables (recursively)
2. `${name}`         environment first, then the process environment
3. `{{$func args}}`  system functions

Anything that cannot be resolved stays exactly as written. Cycle detection
is a separate diagnostic and is never run as part of resolution.

Example:
    url = variables_resolve("{{baseUrl}}/users/{{$randomInt 1 10}}", file_vars, env)
"""

import os
import re
from collections.abc import Mapping
from typing import Final
from restfile.models.dataModel import HttpRequest
from restfile.lib.parser.base import PatternTokenParser
from restfile.lib.parser.resolvers import EnvironmentResolver, FileVariableResolver
from restfile.lib.parser.functions import systemFunctions_resolve
from restfile.lib.log import LOG

FILE_REFERENCE: Final[re.Pattern[str]] = re.compile(r"\{\{([^}]+)\}\}")
ENVIRONMENT_REFERENCE: Final[re.Pattern[str]] = re.compile(r"\$\{([^}]+)\}")


def resolveDepth_get(file_variables: Mapping[str, str]) -> int:
    """
    Recursion cap for nested file variables.

    Uses the configured `maxResolveDepth` when set, else one more than the
    number of declared variables.
    """
    from restfile.config.settings import appsettings

    if appsettings.maxResolveDepth > 0:
        return appsettings.maxResolveDepth
    return len(file_variables) + 1


def variables_resolve(
    text: str | None,
    file_variables: Mapping[str, str] | None = None,
    environment: Mapping[str, str] | None = None,
) -> str | None:
    """
    Resolve every variable and system function reference in text.

    :param text: Text to resolve; None and "" are returned unchanged.
    :param file_variables: Variables declared in the request file.
    :param environment: Caller-supplied environment; overrides file variables.
    :return: The resolved text.
    """
    if not text:
        return text
    file_variables = file_variables or {}
    environment = environment or {}

    file_pass: PatternTokenParser = PatternTokenParser(
        FILE_REFERENCE,
        FileVariableResolver(file_variables, environment, resolveDepth_get(file_variables)),
    )
    result: str = file_pass.parse(text).text
    result = PatternTokenParser(ENVIRONMENT_REFERENCE, EnvironmentResolver(environment)).parse(
        result
    ).text
    return systemFunctions_resolve(result)


def references_extract(text: str | None) -> set[str]:
    """
    Collect the variable references used in text.

    `{{name}}` references are returned as `name`; `${name}` references keep
    their `${...}` wrapper so the two can be told apart.

    :param text: Text to scan.
    :return: The de-duplicated reference set.
    """
    if not text:
        return set()
    references: set[str] = set()
    for match in FILE_REFERENCE.finditer(text):
        if match.group(1).strip():
            references.add(match.group(1).strip())
    for match in ENVIRONMENT_REFERENCE.finditer(text):
        if match.group(1).strip():
            references.add(f"${{{match.group(1).strip()}}}")
    return references


def _cycle_walk(
    name: str, file_variables: Mapping[str, str], visited: set[str]
) -> bool:
    if name in visited:
        return True
    if name not in file_variables:
        return False

    visited = visited | {name}
    for reference in references_extract(file_variables[name]):
        if reference.startswith("${"):
            continue
        if _cycle_walk(reference, file_variables, visited):
            return True
    return False


def circularReferences_detect(file_variables: Mapping[str, str] | None) -> list[str]:
    """
    Find file variables whose reference chain loops.

    Every variable from which a cycle is reachable is reported, in
    declaration order.

    :param file_variables: Variables declared in the request file.
    :return: Names of the variables involved in or leading into a cycle.
    """
    if not file_variables:
        return []
    circular: list[str] = [
        name for name in file_variables if _cycle_walk(name, file_variables, set())
    ]
    if circular:
        LOG(f"Circular variable references: {', '.join(circular)}")
    return circular


def variableReferences_validate(
    text: str | None,
    file_variables: Mapping[str, str] | None = None,
    environment: Mapping[str, str] | None = None,
) -> list[str]:
    """
    List references in text that neither map can satisfy.

    System functions (`{{$...}}`) and response references
    (`{{name.response...}}`) are not variables and are skipped.

    :param text: Text to check.
    :param file_variables: Variables declared in the request file.
    :param environment: Caller-supplied environment.
    :return: Unresolved references in order of first appearance, `{{name}}`
        or `${name}` form.
    """
    if not text:
        return []
    file_variables = file_variables or {}
    environment = environment or {}
    unresolved: list[str] = []

    for match in FILE_REFERENCE.finditer(text):
        name: str = match.group(1).strip()
        if not name or name.startswith("$") or ".response." in name:
            continue
        if name not in environment and name not in file_variables:
            unresolved.append(f"{{{{{name}}}}}")

    for match in ENVIRONMENT_REFERENCE.finditer(text):
        name = match.group(1).strip()
        if name and name not in environment and not os.environ.get(name):
            unresolved.append(f"${{{name}}}")

    return list(dict.fromkeys(unresolved))


def requestVariables_validate(
    request: HttpRequest,
    file_variables: Mapping[str, str] | None = None,
    environment: Mapping[str, str] | None = None,
) -> dict[str, list[str]]:
    """
    Check every templated part of a request for unresolved references.

    :param request: The request to check.
    :param file_variables: Variables declared in the request file.
    :param environment: Caller-supplied environment.
    :return: Mapping of `Url`, `Method`, `Body` and `Header[<name>]` to their
        unresolved references; parts without problems are omitted.
    """
    parts: dict[str, str | None] = {
        "Url": request.url,
        "Method": request.method,
        "Body": request.body,
    }
    for name, value in request.headers.items():
        parts[f"Header[{name}]"] = f"{name}: {value}"

    problems: dict[str, list[str]] = {}
    for part, text in parts.items():
        unresolved: list[str] = variableReferences_validate(text, file_variables, environment)
        if unresolved:
            problems[part] = unresolved
    return problems
