"""
Request body editor for SSE Inspector.

Holds the editable request body together with its inline JSON error.
Failed operations record the error and leave the body untouched.
"""

from typing import Callable, Optional

from .json_value import JsonValidation, dumps, validate_json, format_json, minify_json
from .templates import JsonRpcIdCounter, build_request
from ..utils.errors import JsonBodyError
from ..utils.logging import get_logger

logger = get_logger("sse-inspector.editor")


class RequestEditor:
    """Editable JSON request body."""

    def __init__(
        self,
        body: str = "",
        counter: Optional[JsonRpcIdCounter] = None,
        on_change: Optional[Callable[[str], None]] = None
    ):
        """
        Initialize editor.

        Args:
            body: Initial body text
            counter: JSON-RPC id sequence; a fresh one starting at 1 if None
            on_change: Called with the new body whenever the body changes
        """
        self._body = body
        self.json_error: Optional[str] = None
        self.counter = counter or JsonRpcIdCounter()
        self._on_change = on_change

    @property
    def body(self) -> str:
        return self._body

    def set_body(self, body: str) -> None:
        """Replace the body; typing clears any previous error."""
        self.json_error = None
        self._replace(body)

    def validate(self) -> JsonValidation:
        result = validate_json(self._body)
        self.json_error = result.error
        return result

    def format(self) -> bool:
        """Pretty-print the body. Returns False and keeps the body on error."""
        try:
            formatted = format_json(self._body)
        except JsonBodyError as e:
            return self._fail("format", e)
        self.json_error = None
        self._replace(formatted)
        return True

    def minify(self) -> bool:
        """Strip whitespace from the body. Returns False and keeps the body on error."""
        try:
            minified = minify_json(self._body)
        except JsonBodyError as e:
            return self._fail("minify", e)
        self.json_error = None
        self._replace(minified)
        return True

    def load_template(self, name: str) -> int:
        """
        Replace the body with a JSON-RPC template.

        Returns:
            The request id stamped into the template
        """
        request = build_request(name, self.counter)
        self.json_error = None
        self._replace(dumps(request))
        logger.debug("template_loaded", template=name, request_id=request["id"])
        return request["id"]

    def _fail(self, operation: str, error: JsonBodyError) -> bool:
        self.json_error = error.detail
        logger.debug("body_json_invalid", operation=operation, error=error.detail)
        return False

    def _replace(self, body: str) -> None:
        if body == self._body:
            return
        self._body = body
        if self._on_change:
            self._on_change(body)
