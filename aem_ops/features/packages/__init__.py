"""CRX package manager operations for AEM 6.5."""

from aem_ops.features.packages.manager import (
    build_package,
    delete_package,
    list_packages,
    parse_package_response,
    resolve_package_name,
    upload_and_install_package,
    upload_package,
)
from aem_ops.features.packages.models import (
    MarkupPackageResponse,
    PackageCommandOutput,
    PackageInfo,
    PackageListOutput,
    PackageOutput,
    ParsedPackageResponse,
    StructuredPackageResponse,
)


__all__ = [
    "MarkupPackageResponse",
    "PackageCommandOutput",
    "PackageInfo",
    "PackageListOutput",
    "PackageOutput",
    "ParsedPackageResponse",
    "StructuredPackageResponse",
    "build_package",
    "delete_package",
    "list_packages",
    "parse_package_response",
    "resolve_package_name",
    "upload_and_install_package",
    "upload_package",
]
