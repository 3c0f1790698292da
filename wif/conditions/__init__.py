"""Trust-condition compilation, validation and introspection."""

from .claims import (
    ASSERTION_PREFIX,
    DEFAULT_ATTRIBUTE_MAPPING,
    DEFAULT_AUDIENCES,
    GITHUB_ISSUER_URI,
    build_attribute_mapping,
)
from .compiler import compile_condition, validate_repository
from .introspect import extract_ref_patterns, extract_repositories
from .validator import is_valid_expression, validate_expression


__all__ = [
    "ASSERTION_PREFIX",
    "DEFAULT_ATTRIBUTE_MAPPING",
    "DEFAULT_AUDIENCES",
    "GITHUB_ISSUER_URI",
    "build_attribute_mapping",
    "compile_condition",
    "validate_repository",
    "extract_ref_patterns",
    "extract_repositories",
    "is_valid_expression",
    "validate_expression",
]
