"""Validation of AEM paths, URLs and allowlists."""

from aem_ops.features.validation.models import ValidationResult
from aem_ops.features.validation.validator import (
    normalize_base_url,
    parse_path_list,
    sanitize_path,
    validate_aem_path,
    validate_aem_paths,
    validate_base_url,
    validate_url,
    validate_url_against_allowlist,
    validate_urls_against_allowlist,
)


__all__ = [
    "ValidationResult",
    "normalize_base_url",
    "parse_path_list",
    "sanitize_path",
    "validate_aem_path",
    "validate_aem_paths",
    "validate_base_url",
    "validate_url",
    "validate_url_against_allowlist",
    "validate_urls_against_allowlist",
]
