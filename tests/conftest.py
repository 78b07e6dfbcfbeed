"""Shared pytest fixtures."""

from collections.abc import Generator

import pytest

from aem_ops.features.http.metrics import ClientMetrics
from aem_ops.features.observability.context import RuntimeContext


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Give every test fresh metrics and runtime context."""
    ClientMetrics.reset()
    RuntimeContext.reset()
    yield
    ClientMetrics.reset()
    RuntimeContext.reset()
