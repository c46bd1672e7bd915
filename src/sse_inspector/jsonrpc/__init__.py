"""JSON utilities and JSON-RPC request templates."""

from .editor import RequestEditor
from .json_value import JsonValidation, format_json, minify_json, parse_payload, validate_json
from .templates import JsonRpcIdCounter, build_request, template_names

__all__ = [
    "RequestEditor",
    "JsonValidation",
    "format_json",
    "minify_json",
    "parse_payload",
    "validate_json",
    "JsonRpcIdCounter",
    "build_request",
    "template_names",
]
