"""API endpoint evidence from decorator, resolver and router-call declarations."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from ...models import API_ENDPOINT, EvidenceItem
from .core import evidence, line_of, surrounding_code

_NEST_ROUTE = re.compile(r"@(Get|Post|Put|Delete|Patch)\(\s*['\"]?([^'\")\s]*)['\"]?\s*\)")
_NEST_CONTROLLER = re.compile(r"@Controller\(\s*['\"]([^'\"]*)['\"]\s*\)")
_GRAPHQL_OPERATION = re.compile(r"@(Query|Mutation|Subscription|ResolveField)\(\s*(?:[^)]*)\)")
_GRAPHQL_RESOLVER = re.compile(r"@Resolver\(\s*(?:\(\)\s*=>\s*)?['\"]?(\w+)['\"]?\s*\)")
_ROUTER_CALL = re.compile(r"\.(get|post|put|delete|patch)\(\s*['\"]([^'\"]+)['\"]")
_NEXT_METHOD = re.compile(r"(?:async\s+)?(\w+)\s*\(")

_FASTAPI_DECORATOR = re.compile(r"@(\w+)\.(get|post|put|delete|patch)\((['\"])([^'\"]+)\3")
_FLASK_ROUTE = re.compile(
    r"@(\w+)\.route\((['\"])([^'\"]+)\2(?:[^)]*?methods\s*=\s*[\[(]([^\])]*)[\])])?"
)
_NEXT_DEF = re.compile(r"def\s+(\w+)\s*\(")

_LOOKAHEAD_CHARS = 200


def normalize_route(prefix: str, route: str) -> str:
    """Join ``prefix`` and ``route`` under a leading slash, collapsing repeats."""
    return re.sub(r"/+", "/", f"/{prefix}/{route}")


def extract_api_endpoints(
    file_path: str, content: str, frameworks: Sequence[str]
) -> List[EvidenceItem]:
    items: List[EvidenceItem] = []
    if "nestjs" in frameworks:
        items.extend(_nest_routes(file_path, content))
    if "graphql" in frameworks or "nestjs" in frameworks:
        items.extend(_graphql_operations(file_path, content))
    if "express" in frameworks or "fastify" in frameworks:
        router_framework = "express" if "express" in frameworks else "fastify"
        items.extend(_router_calls(file_path, content, router_framework))
    if file_path.endswith(".py"):
        if "fastapi" in frameworks:
            items.extend(_fastapi_routes(file_path, content))
        if "flask" in frameworks:
            items.extend(_flask_routes(file_path, content))
    return items


def _nest_routes(file_path: str, content: str) -> List[EvidenceItem]:
    controller = _NEST_CONTROLLER.search(content)
    prefix = controller.group(1) if controller else ""
    items: List[EvidenceItem] = []
    for match in _NEST_ROUTE.finditer(content):
        method = match.group(1).upper()
        path = normalize_route(prefix, match.group(2) or "/")
        handler = _name_after(content, match.end(), _NEXT_METHOD)
        items.append(
            evidence(
                API_ENDPOINT,
                file_path,
                handler or f"{method} {path}",
                code=surrounding_code(content, match.start(), 15),
                line_number=line_of(content, match.start()),
                metadata={"method": method, "path": path, "framework": "nestjs"},
            )
        )
    return items


def _graphql_operations(file_path: str, content: str) -> List[EvidenceItem]:
    resolver = _GRAPHQL_RESOLVER.search(content)
    resolver_type = resolver.group(1) if resolver else ""
    items: List[EvidenceItem] = []
    for match in _GRAPHQL_OPERATION.finditer(content):
        operation = match.group(1)
        handler = _name_after(content, match.end(), _NEXT_METHOD) or operation
        path = f"{resolver_type}.{handler}" if resolver_type else handler
        items.append(
            evidence(
                API_ENDPOINT,
                file_path,
                handler,
                code=surrounding_code(content, match.start(), 15),
                line_number=line_of(content, match.start()),
                metadata={
                    "method": f"GRAPHQL_{operation.upper()}",
                    "path": path,
                    "framework": "graphql",
                },
            )
        )
    return items


def _router_calls(file_path: str, content: str, framework: str) -> List[EvidenceItem]:
    items: List[EvidenceItem] = []
    for match in _ROUTER_CALL.finditer(content):
        method = match.group(1).upper()
        path = match.group(2)
        items.append(
            evidence(
                API_ENDPOINT,
                file_path,
                f"{method} {path}",
                code=surrounding_code(content, match.start(), 10),
                line_number=line_of(content, match.start()),
                metadata={"method": method, "path": path, "framework": framework},
            )
        )
    return items


def _fastapi_routes(file_path: str, content: str) -> List[EvidenceItem]:
    items: List[EvidenceItem] = []
    for match in _FASTAPI_DECORATOR.finditer(content):
        router, method, _, route = match.groups()
        method = method.upper()
        path = normalize_route("", route)
        handler = _name_after(content, match.end(), _NEXT_DEF)
        items.append(
            evidence(
                API_ENDPOINT,
                file_path,
                handler or f"{method} {path}",
                code=surrounding_code(content, match.start(), 15),
                line_number=line_of(content, match.start()),
                metadata={"method": method, "path": path, "framework": "fastapi", "router": router},
            )
        )
    return items


def _flask_routes(file_path: str, content: str) -> List[EvidenceItem]:
    items: List[EvidenceItem] = []
    for match in _FLASK_ROUTE.finditer(content):
        router, _, route, methods = match.groups()
        verbs = re.findall(r"['\"](\w+)['\"]", methods or "") or ["GET"]
        path = normalize_route("", route)
        handler = _name_after(content, match.end(), _NEXT_DEF)
        for verb in verbs:
            method = verb.upper()
            items.append(
                evidence(
                    API_ENDPOINT,
                    file_path,
                    handler or f"{method} {path}",
                    code=surrounding_code(content, match.start(), 15),
                    line_number=line_of(content, match.start()),
                    metadata={"method": method, "path": path, "framework": "flask", "router": router},
                )
            )
    return items


def _name_after(content: str, position: int, pattern: re.Pattern[str]) -> Optional[str]:
    match = pattern.search(content[position : position + _LOOKAHEAD_CHARS])
    return match.group(1) if match else None


__all__ = ["extract_api_endpoints", "normalize_route"]
