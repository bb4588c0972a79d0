"""
Test Service for the trackflags Python SDK

This HTTP server wraps a local or remote flags provider and exposes a
standard interface for the contract test harness to interact with.

Protocol:
- GET /  -> Health check
- POST / -> Execute command
- DELETE / -> Cleanup/shutdown
"""

import os
from contextlib import asynccontextmanager
from typing import Any, Optional, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from trackflags import (
    LocalFlagsConfig,
    LocalFlagsProvider,
    RemoteFlagsConfig,
    RemoteFlagsProvider,
)
from trackflags.config import DEFAULT_API_HOST

provider: Optional[Union[LocalFlagsProvider, RemoteFlagsProvider]] = None


async def close_provider() -> None:
    global provider
    if provider:
        await provider.close()
        provider = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cleanup on shutdown
    await close_provider()

app = FastAPI(lifespan=lifespan)


def make_response(
    value: Optional[Any] = None,
    variant: Optional[dict] = None,
    flags: Optional[dict] = None,
    success: Optional[bool] = None,
    error: Optional[str] = None,
    message: Optional[str] = None,
) -> dict:
    resp = {}
    if value is not None:
        resp["value"] = value
    if variant is not None:
        resp["variant"] = variant
    if flags is not None:
        resp["flags"] = flags
    if success is not None:
        resp["success"] = success
    if error is not None:
        resp["error"] = error
    if message is not None:
        resp["message"] = message
    return resp


def not_initialized() -> dict:
    return make_response(error="NotInitializedError", message="Provider not initialized")


async def init_provider(config_data: dict) -> None:
    global provider
    await close_provider()

    token = config_data.get("token", "")
    api_host = config_data.get("apiHost", DEFAULT_API_HOST)

    if config_data.get("mode", "local") == "remote":
        provider = RemoteFlagsProvider(token, RemoteFlagsConfig(api_host=api_host))
        return

    provider = LocalFlagsProvider(
        token,
        LocalFlagsConfig(
            api_host=api_host,
            enable_polling=config_data.get("enablePolling", False),
            polling_interval_in_seconds=config_data.get("pollingInterval", 60),
        ),
    )
    await provider.start_polling_for_definitions()


async def handle_command(cmd: dict) -> dict:
    command = cmd.get("command")

    if command == "init":
        config_data = cmd.get("config")
        if not config_data:
            return make_response(error="ValidationError", message="config is required")

        try:
            await init_provider(config_data)
            return make_response(success=True)
        except Exception as e:
            return make_response(error=type(e).__name__, message=str(e))

    elif command in ("getVariant", "getVariantValue", "isEnabled"):
        if not provider:
            return not_initialized()

        flag_key = cmd.get("flagKey")
        if not flag_key:
            return make_response(error="ValidationError", message="flagKey is required")

        context = cmd.get("context") or {}
        remote = isinstance(provider, RemoteFlagsProvider)

        if command == "isEnabled":
            value = provider.is_enabled(flag_key, context)
            return make_response(value=await value if remote else value)

        if command == "getVariantValue":
            value = provider.get_variant_value(flag_key, cmd.get("defaultValue"), context)
            return make_response(value=await value if remote else value)

        variant = provider.get_variant(flag_key, None, context)
        if remote:
            variant = await variant
        if variant is None:
            return make_response(success=False)
        return make_response(variant=variant.to_dict())

    elif command == "getAllVariants":
        if not provider:
            return not_initialized()

        context = cmd.get("context") or {}
        if isinstance(provider, RemoteFlagsProvider):
            variants = await provider.get_all_variants(context)
            if variants is None:
                return make_response(error="FetchError", message="Failed to fetch variants")
        else:
            variants = provider.get_all_variants(context)

        return make_response(
            flags={key: variant.to_dict() for key, variant in variants.items()}
        )

    elif command == "close":
        await close_provider()
        return make_response(success=True)

    else:
        return make_response(error="UnknownCommand", message=f"Unknown command: {command}")


@app.get("/")
async def health_check():
    return {"success": True}


@app.post("/")
async def execute_command(request: Request):
    try:
        cmd = await request.json()
        result = await handle_command(cmd)
        return JSONResponse(content=result)
    except Exception as e:
        return JSONResponse(
            content=make_response(error="ParseError", message=str(e)),
            status_code=400,
        )


@app.delete("/")
async def cleanup():
    await close_provider()
    return {"success": True}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8007"))
    print(f"[trackflags test-service] Listening on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")
