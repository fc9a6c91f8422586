"""
Unit tests for FastAPI dependencies.

Tests the dependencies in mdb_dashboard.dependencies module.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from mdb_dashboard.config import DashboardConfig
from mdb_dashboard.dependencies import get_config, get_gateway, get_registry


@pytest.fixture
def mock_request():
    """Create a mock FastAPI Request object."""
    request = MagicMock()
    request.app = MagicMock()
    request.app.state = MagicMock()
    return request


@pytest.mark.unit
class TestStateDependencies:
    """Tests for dependencies reading app.state."""

    @pytest.mark.asyncio
    async def test_get_registry_success(self, mock_request, registry):
        mock_request.app.state.registry = registry

        assert await get_registry(mock_request) is registry

    @pytest.mark.asyncio
    async def test_get_gateway_success(self, mock_request, gateway):
        mock_request.app.state.gateway = gateway

        assert await get_gateway(mock_request) is gateway

    @pytest.mark.asyncio
    async def test_get_config_success(self, mock_request):
        config = DashboardConfig()
        mock_request.app.state.config = config

        assert await get_config(mock_request) is config

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "dependency, attribute, detail",
        [
            (get_registry, "registry", "Client registry not initialized"),
            (get_gateway, "gateway", "Query gateway not initialized"),
            (get_config, "config", "Dashboard configuration not available"),
        ],
    )
    async def test_missing_state_returns_503(self, mock_request, dependency, attribute, detail):
        setattr(mock_request.app.state, attribute, None)

        with pytest.raises(HTTPException) as exc_info:
            await dependency(mock_request)

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == detail
