"""Content template rendering exceptions.

Exception Hierarchy:
    RenderError (base)
    ├── TemplateParseError (template is syntactically invalid)
    └── MissingKeyError (template references a key absent from the data)
"""


class RenderError(Exception):
    """Base exception for content template rendering."""

    pass


class TemplateParseError(RenderError):
    """Raised when a content template cannot be parsed.

    Attributes:
        template: The template source as written
        details: Parser error message
    """

    def __init__(self, template: str, details: str) -> None:
        self.template = template
        self.details = details
        super().__init__(f"Invalid content template {template!r}: {details}")


class MissingKeyError(RenderError):
    """Raised when a template references a key that the data does not provide.

    Attributes:
        key: The missing key (last path segment)
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Template references missing key '{key}'")
