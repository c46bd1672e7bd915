"""JSON-RPC 2.0 request templates for common MCP methods."""

import copy
from typing import Any, Dict, List

from ..utils.errors import TemplateNotFoundError

JSONRPC_VERSION = "2.0"

TEMPLATES: Dict[str, Dict[str, Any]] = {
    "tools/list": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 1,
        "method": "tools/list",
        "params": {}
    },
    "tools/call": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 2,
        "method": "tools/call",
        "params": {
            "name": "example_tool",
            "arguments": {}
        }
    },
    "resources/list": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 3,
        "method": "resources/list",
        "params": {}
    },
    "resources/read": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 4,
        "method": "resources/read",
        "params": {
            "uri": "file://example.txt"
        }
    },
    "prompts/list": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 5,
        "method": "prompts/list",
        "params": {}
    },
    "prompts/get": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 6,
        "method": "prompts/get",
        "params": {
            "name": "example_prompt",
            "arguments": {}
        }
    },
    "custom": {
        "jsonrpc": JSONRPC_VERSION,
        "id": 7,
        "method": "your_method",
        "params": {}
    },
}


class JsonRpcIdCounter:
    """Request id sequence shared by every template loaded in one session."""

    def __init__(self, start: int = 1):
        self._next = start

    @property
    def peek(self) -> int:
        return self._next

    def next_id(self) -> int:
        value = self._next
        self._next += 1
        return value


def template_names() -> List[str]:
    return list(TEMPLATES)


def build_request(name: str, counter: JsonRpcIdCounter) -> Dict[str, Any]:
    """
    Instantiate a template with the counter's next id.

    Raises:
        TemplateNotFoundError: If ``name`` is not a known template; the
            counter is left untouched in that case.
    """
    template = TEMPLATES.get(name)
    if template is None:
        raise TemplateNotFoundError(name, template_names())

    request = copy.deepcopy(template)
    request["id"] = counter.next_id()
    return request
