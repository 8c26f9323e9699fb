"""Contract document generation errors"""


class DocumentGenerationError(Exception):
    """Base class for failures raised by the document backends"""


class ConfigurationError(DocumentGenerationError):
    """Backend configuration is missing or malformed (fatal until fixed)"""


class TemplateCopyError(DocumentGenerationError):
    """Drive did not return a file id for the template copy"""


class PlaceholderNotFoundError(DocumentGenerationError):
    """An image placeholder token is not present in the document body"""

    def __init__(self, placeholder: str):
        super().__init__(f"Placeholder {placeholder} not found in document")
        self.placeholder = placeholder


class PdfRenderError(DocumentGenerationError):
    """The headless browser worker failed to print the HTML to PDF"""


class AllBackendsFailedError(DocumentGenerationError):
    """Every generator in a fallback chain raised"""

    def __init__(self, errors: dict[str, Exception]):
        summary = "; ".join(f"{kind}: {type(err).__name__}: {err}" for kind, err in errors.items())
        super().__init__(f"All document backends failed ({summary})")
        self.errors = errors
