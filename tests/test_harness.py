"""Tests for the contract test service commands."""

import importlib.util
from pathlib import Path

import httpx
import pytest
from conftest import DEFINITIONS_URL, FLAGS_URL, TOKEN, make_flag

SERVICE_PATH = Path(__file__).resolve().parent.parent / "test_service" / "main.py"


@pytest.fixture
async def service():
    spec = importlib.util.spec_from_file_location("trackflags_test_service", SERVICE_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    yield module
    await module.close_provider()


def init_command(mode):
    return {"command": "init", "config": {"mode": mode, "token": TOKEN}}


class TestCommands:
    """Tests for handle_command."""

    async def test_requires_init(self, service):
        result = await service.handle_command({"command": "isEnabled", "flagKey": "f"})
        assert result["error"] == "NotInitializedError"

    async def test_init_requires_config(self, service):
        result = await service.handle_command({"command": "init"})
        assert result["error"] == "ValidationError"

    async def test_unknown_command(self, service):
        result = await service.handle_command({"command": "identify"})
        assert result["error"] == "UnknownCommand"

    async def test_local_mode(self, service, mock_api):
        mock_api.get(DEFINITIONS_URL).mock(
            return_value=httpx.Response(200, json={"flags": [make_flag(
                variants=[{"key": "on", "value": True, "split": 100.0}],
            )]})
        )
        context = {"distinct_id": "user-1"}

        assert (await service.handle_command(init_command("local")))["success"] is True

        result = await service.handle_command(
            {"command": "isEnabled", "flagKey": "test_flag", "context": context}
        )
        assert result == {"value": True}

        result = await service.handle_command(
            {"command": "getVariant", "flagKey": "test_flag", "context": context}
        )
        assert result["variant"]["variant_key"] == "on"

        result = await service.handle_command(
            {"command": "getVariantValue", "flagKey": "missing", "defaultValue": "x",
             "context": context}
        )
        assert result == {"value": "x"}

        result = await service.handle_command({"command": "getAllVariants", "context": context})
        assert set(result["flags"]) == {"test_flag"}

        assert (await service.handle_command({"command": "close"}))["success"] is True
        assert service.provider is None

    async def test_remote_mode(self, service, mock_api):
        mock_api.get(FLAGS_URL).mock(
            return_value=httpx.Response(
                200, json={"flags": {"test_flag": {"variant_key": "on", "variant_value": "blue"}}}
            )
        )
        context = {"distinct_id": "user-1"}

        await service.handle_command(init_command("remote"))

        result = await service.handle_command(
            {"command": "getVariantValue", "flagKey": "test_flag", "context": context}
        )
        assert result == {"value": "blue"}

        result = await service.handle_command(
            {"command": "isEnabled", "flagKey": "test_flag", "context": context}
        )
        assert result == {"value": False}

    async def test_remote_get_all_variants_failure(self, service, mock_api):
        mock_api.get(FLAGS_URL).mock(return_value=httpx.Response(500))

        await service.handle_command(init_command("remote"))
        result = await service.handle_command({"command": "getAllVariants", "context": {}})

        assert result["error"] == "FetchError"
