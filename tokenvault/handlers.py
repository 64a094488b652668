"""
HTTP surface — aiohttp routes over a Tokenizer.

- ``POST /tokens`` — tokenize a card, answers the token's public shape
- ``GET /tokens/{token_id}`` — token public shape
- ``POST /tokens/{token_id}/detokenize`` — the card behind a token

Security Note:
    Validation errors report field names only; request bodies carry PANs
    and must never be echoed back or logged.
"""
import logging
from typing import Any

import orjson
from aiohttp import web
from pydantic import ValidationError

from .engine import Tokenizer
from .exceptions import (
    DeserializationError,
    IntegrityError,
    NotFoundError,
    StorageError,
    TokenVaultError,
    TransportError,
)
from .models import Card

logger = logging.getLogger("tokenvault.handlers")

TOKENIZER_KEY = web.AppKey("tokenizer", Tokenizer)

_ERROR_STATUS: dict[type, tuple[int, str]] = {
    NotFoundError: (404, "not_found"),
    IntegrityError: (502, "integrity_error"),
    TransportError: (503, "transport_error"),
    StorageError: (503, "storage_error"),
    DeserializationError: (500, "deserialization_error"),
}


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(
        data, status=status, dumps=lambda obj: orjson.dumps(obj).decode("utf-8")
    )


def error_response(status: int, error: str, detail: str) -> web.Response:
    return json_response({"error": error, "detail": detail}, status=status)


def _invalid_fields(err: ValidationError) -> list[str]:
    return sorted({".".join(str(p) for p in e["loc"]) for e in err.errors()})


@web.middleware
async def vault_error_middleware(request: web.Request, handler):
    """Translate vault errors into JSON error responses."""
    try:
        return await handler(request)
    except TokenVaultError as err:
        for exc_type, (status, error) in _ERROR_STATUS.items():
            if isinstance(err, exc_type):
                break
        else:
            status, error = 500, "vault_error"
        logger.warning(
            "%s %s failed with %s: %s", request.method, request.path, error, err
        )
        return error_response(status, error, err.detail)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = orjson.loads(await request.read())
    except orjson.JSONDecodeError:
        raise web.HTTPBadRequest(
            text=orjson.dumps(
                {"error": "invalid_request", "detail": "Body is not valid JSON"}
            ).decode("utf-8"),
            content_type="application/json",
        ) from None
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=orjson.dumps(
                {"error": "invalid_request", "detail": "Body must be a JSON object"}
            ).decode("utf-8"),
            content_type="application/json",
        )
    return body


async def create_token(request: web.Request) -> web.Response:
    tokenizer = request.app[TOKENIZER_KEY]
    body = await _read_json(request)
    merchant_id = body.get("merchant_id")
    provider = body.get("provider")
    if not isinstance(merchant_id, str) or not merchant_id:
        return error_response(400, "invalid_request", "merchant_id is required")
    if not isinstance(provider, str) or not provider:
        return error_response(400, "invalid_request", "provider is required")
    optional = {}
    for field in ("card_id", "token_provider"):
        value = body.get(field)
        if value is None:
            value = ""
        if not isinstance(value, str):
            return error_response(
                400, "invalid_request", f"{field} must be a string"
            )
        optional[field] = value
    try:
        card = Card.model_validate(body.get("card") or {})
    except ValidationError as err:
        return error_response(
            400, "invalid_card", f"Invalid card fields: {_invalid_fields(err)}"
        )
    token = await tokenizer.tokenize(card, merchant_id, provider, **optional)
    return json_response(token.to_public(), status=201)


async def get_token(request: web.Request) -> web.Response:
    tokenizer = request.app[TOKENIZER_KEY]
    token = await tokenizer.lookup(request.match_info["token_id"])
    return json_response(token.to_public())


async def detokenize(request: web.Request) -> web.Response:
    tokenizer = request.app[TOKENIZER_KEY]
    card = await tokenizer.detokenize(request.match_info["token_id"])
    return json_response(card.model_dump())


def setup_routes(app: web.Application, tokenizer: Tokenizer) -> None:
    """Register the vault routes and error middleware on ``app``."""
    app[TOKENIZER_KEY] = tokenizer
    app.middlewares.append(vault_error_middleware)
    app.router.add_post("/tokens", create_token)
    app.router.add_get("/tokens/{token_id}", get_token)
    app.router.add_post("/tokens/{token_id}/detokenize", detokenize)


def create_app(tokenizer: Tokenizer) -> web.Application:
    """Build an application serving ``tokenizer``; closes it on cleanup."""
    app = web.Application()
    setup_routes(app, tokenizer)

    async def _close_tokenizer(app: web.Application) -> None:
        await app[TOKENIZER_KEY].close()

    app.on_cleanup.append(_close_tokenizer)
    return app
