"""
reactloop Schema Projection

Pure functions mapping canonical ToolDeclarations to the declaration
shape each wire protocol expects:

    anthropic  {name, description, input_schema}
    openai     {type: "function", function: {name, description, parameters}}
    ollama     openai shape, with array/object parameters flattened to
               JSON-encoded strings (simplified calling surface)
    gemini     [{functionDeclarations: [...]}] with upper-cased type names
"""

from __future__ import annotations

import copy
from typing import Any

from reactloop.providers.catalog import WireProtocol, protocol_for
from reactloop.tools.models import ToolDeclaration

DEFAULT_ITEMS = {"type": "string"}

JSON_STRING_NOTE = "Pass this value as JSON-encoded text."

# JSON-schema keywords the Gemini function-declaration schema rejects
GEMINI_UNSUPPORTED_KEYS = frozenset({
    "default",
    "additionalProperties",
    "$schema",
    "examples",
    "title",
})


def _base_parameters(decl: ToolDeclaration) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": copy.deepcopy(decl.properties),
        "required": decl.required,
    }


def ensure_array_items(schema: Any) -> Any:
    """Return a copy of ``schema`` where every array carries an ``items`` schema."""
    if isinstance(schema, list):
        return [ensure_array_items(s) for s in schema]
    if not isinstance(schema, dict):
        return schema

    result = {k: ensure_array_items(v) for k, v in schema.items()}
    if result.get("type") == "array" and not result.get("items"):
        result["items"] = dict(DEFAULT_ITEMS)
    return result


# ─── Anthropic ───────────────────────────────────────────────


def to_anthropic(declarations: list[ToolDeclaration]) -> list[dict]:
    return [
        {
            "name": d.name,
            "description": d.description,
            "input_schema": _base_parameters(d),
        }
        for d in declarations
    ]


# ─── OpenAI ──────────────────────────────────────────────────


def to_openai(declarations: list[ToolDeclaration]) -> list[dict]:
    """OpenAI function tools. Array parameters must declare ``items``."""
    return [
        {
            "type": "function",
            "function": {
                "name": d.name,
                "description": d.description,
                "parameters": ensure_array_items(_base_parameters(d)),
            },
        }
        for d in declarations
    ]


# ─── Ollama ──────────────────────────────────────────────────


def simplify_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Flatten structured top-level parameters to strings.

    Local models served by Ollama are unreliable with nested schemas, so
    they see a string parameter plus a note asking for JSON text. The
    dispatcher parses such strings back using the original schema.
    """
    simplified: dict[str, Any] = {}
    for key, prop in properties.items():
        if not isinstance(prop, dict):
            simplified[key] = prop
            continue
        if prop.get("type") in ("array", "object"):
            description = prop.get("description", "").strip()
            kind = "array" if prop["type"] == "array" else "object"
            note = f"{JSON_STRING_NOTE} Expected a JSON {kind}."
            simplified[key] = {
                "type": "string",
                "description": f"{description} ({note})" if description else note,
            }
        else:
            simplified[key] = copy.deepcopy(prop)
    return simplified


def to_ollama(declarations: list[ToolDeclaration]) -> list[dict]:
    return [
        {
            "type": "function",
            "function": {
                "name": d.name,
                "description": d.description,
                "parameters": {
                    "type": "object",
                    "properties": simplify_properties(d.properties),
                    "required": d.required,
                },
            },
        }
        for d in declarations
    ]


# ─── Gemini ──────────────────────────────────────────────────


def to_gemini_schema(schema: Any) -> Any:
    """Convert a JSON-schema fragment to Gemini's OpenAPI-subset form."""
    if not isinstance(schema, dict):
        return schema

    result: dict[str, Any] = {}
    for key, value in schema.items():
        if key in GEMINI_UNSUPPORTED_KEYS:
            continue
        if key == "type":
            if isinstance(value, list):
                # ["string", "null"] style unions: keep the first concrete type
                concrete = [v for v in value if v != "null"]
                value = concrete[0] if concrete else "string"
            result["type"] = str(value).upper()
        elif key == "properties" and isinstance(value, dict):
            result["properties"] = {k: to_gemini_schema(v) for k, v in value.items()}
        elif key == "items":
            result["items"] = to_gemini_schema(value)
        else:
            result[key] = copy.deepcopy(value)

    result.setdefault("type", "STRING")
    if result["type"] == "ARRAY" and not result.get("items"):
        result["items"] = {"type": "STRING"}
    return result


def to_gemini(declarations: list[ToolDeclaration]) -> list[dict]:
    function_declarations = []
    for d in declarations:
        entry: dict[str, Any] = {"name": d.name, "description": d.description}
        if d.properties:
            entry["parameters"] = {
                "type": "OBJECT",
                "properties": {k: to_gemini_schema(v) for k, v in d.properties.items()},
                "required": d.required,
            }
        function_declarations.append(entry)
    if not function_declarations:
        return []
    return [{"functionDeclarations": function_declarations}]


_PROJECTORS = {
    WireProtocol.ANTHROPIC: to_anthropic,
    WireProtocol.OPENAI: to_openai,
    WireProtocol.OLLAMA: to_ollama,
    WireProtocol.GEMINI: to_gemini,
}


def project(declarations: list[ToolDeclaration], target: str | WireProtocol) -> list[dict]:
    """Project declarations for a vendor name or wire protocol."""
    return _PROJECTORS[protocol_for(target)](declarations)
