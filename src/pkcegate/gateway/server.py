"""HTTP front end for the command gateway.

Exposes POST /command on a Starlette app served by uvicorn. Token
verification is the job of an upstream authorizer: it is expected to attach
the verified claims to request.state.claims (or a custom resolver can be
supplied).
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import uvicorn
from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from pkcegate.config import GatewayConfig
from pkcegate.gateway.actions import SimulatedAction
from pkcegate.gateway.audit import AuditSink, CloudWatchAuditSink, LoggingAuditSink
from pkcegate.gateway.handler import CommandGateway
from pkcegate.gateway.models import AuthenticatedIdentity, GatewayRequest
from pkcegate.gateway.parameters import SSMSecretProvider

logger = logging.getLogger(__name__)

ClaimsResolver = Callable[[Request], "dict[str, Any] | None"]

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def state_claims(request: Request) -> dict[str, Any] | None:
    """Read claims placed on the request state by upstream middleware."""
    return getattr(request.state, "claims", None)


def create_app(
    gateway: CommandGateway,
    claims_resolver: ClaimsResolver = state_claims,
    path: str = "/command",
) -> Starlette:
    """Build the Starlette application around a gateway."""

    def resolve_identity(request: Request) -> AuthenticatedIdentity | None:
        # Unreadable claims fail closed as an unauthenticated request
        try:
            return AuthenticatedIdentity.from_claims(claims_resolver(request))
        except Exception as e:
            logger.warning(f"Could not resolve caller identity: {e}")
            return None

    async def handle_command(request: Request) -> Response:
        body = await request.body()
        gateway_request = GatewayRequest(
            identity=resolve_identity(request),
            body=body,
            source_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            origin=request.headers.get("origin"),
        )
        result = await gateway.handle(gateway_request)
        return JSONResponse(
            result.body, status_code=result.status_code, headers=result.headers
        )

    async def handle_preflight(request: Request) -> Response:
        headers = gateway.cors_headers(request.headers.get("origin"))
        headers.pop("Content-Type", None)
        headers.update(PREFLIGHT_HEADERS)
        return Response(status_code=204, headers=headers)

    return Starlette(
        routes=[
            Route(path, handle_command, methods=["POST"]),
            Route(path, handle_preflight, methods=["OPTIONS"]),
        ]
    )


def build_gateway(config: GatewayConfig) -> CommandGateway:
    """Wire the production collaborators from configuration."""
    audit_sink: AuditSink
    if config.audit_backend == "logging":
        audit_sink = LoggingAuditSink()
    else:
        audit_sink = CloudWatchAuditSink(log_group_name=config.log_group_name)

    return CommandGateway(
        secret_provider=SSMSecretProvider(
            namespace=config.parameter_namespace, keys=config.secret_keys
        ),
        action=SimulatedAction(),
        audit_sink=audit_sink,
        allowed_origins=config.allowed_origins,
    )


def main() -> None:
    load_dotenv()
    config = GatewayConfig.from_env()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = create_app(build_gateway(config))
    logger.info(f"Command gateway listening on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level="info")


if __name__ == "__main__":
    main()
