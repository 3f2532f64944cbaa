"""deployconf: policy-compliant normalization of deployment configs.

Usage:
    from deployconf import load_document, normalize_document

    document = load_document(Path("config.yaml"))
    output = normalize_document(document)
"""

from .document import ConfigDocument, load_document, normalize_document, render_document
from .exceptions import (
    DecodeError,
    DeployConfError,
    PolicyApplicationError,
    ValidationError,
)

__all__ = [
    "ConfigDocument",
    "DecodeError",
    "DeployConfError",
    "PolicyApplicationError",
    "ValidationError",
    "load_document",
    "normalize_document",
    "render_document",
]

__version__ = "0.1.0"
