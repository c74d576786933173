# main.py
import json
import logging
import sys
import time
import uuid
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from AuthorizationCodeGrant import AuthorizationCodeGrant
from credential_manager import CredentialManager
from models import ClientRegistrationRequest, OAuthConfig
from oauth_errors import SERVER_ERROR_BODY, InvalidRequestError, InvalidTokenError, OAuthError
from request_validator import format_errors, validate_request
from session_provider import SessionProvider, StarletteSessionProvider

# Configure logging to write to stdout only
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s %(levelname)s %(message)s',
                    handlers=[
                        logging.StreamHandler(sys.stdout)
                    ])

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


class OriginLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get('origin')
        logging.info(f"Incoming {request.method} {request.url.path} from origin: {origin}")
        response = await call_next(request)
        return response


def oauth_error_response(error: OAuthError, headers=None):
    return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=headers)


def server_error_response():
    return JSONResponse(status_code=500, content=SERVER_ERROR_BODY)


async def read_body_params(request: Request):
    body = (await request.body()).decode('utf-8')
    content_type = request.headers.get('content-type', '')
    if FORM_CONTENT_TYPE in content_type:
        return dict(parse_qsl(body, keep_blank_values=True))
    return json.loads(body)


def create_app(config: Optional[OAuthConfig] = None,
               session_provider: Optional[SessionProvider] = None) -> FastAPI:
    config = config or CredentialManager.get_oauth_config()
    grant = AuthorizationCodeGrant(config)

    app = FastAPI(title="MCP Memory - Authorization Server")
    app.state.config = config
    app.state.grant = grant

    # Add this middleware before CORSMiddleware
    app.add_middleware(OriginLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    if session_provider is None:
        if not config.session_secret:
            raise EnvironmentError("Missing required environment variable: SESSION_SECRET")
        app.add_middleware(SessionMiddleware, secret_key=config.session_secret)
        session_provider = StarletteSessionProvider()
    app.state.session_provider = session_provider

    resource_metadata_url = f"{config.public_url}/.well-known/oauth-protected-resource"

    # Routes

    @app.api_route("/authorize", methods=["GET", "POST"])
    async def authorize(request: Request):
        try:
            raw = dict(request.query_params)
            if request.method == "POST" and FORM_CONTENT_TYPE in request.headers.get('content-type', ''):
                raw.update(await read_body_params(request))
            try:
                params = grant.validate_authorization_request(raw)
            except OAuthError as e:
                return oauth_error_response(e)

            subject = await session_provider.get_subject(request)
            if not subject:
                login_url = urljoin(str(request.url), config.login_url)
                separator = '&' if '?' in login_url else '?'
                # form POST params live in the body; fold them into the callback query
                callback_url = str(request.url.replace(query=urlencode(raw)))
                callback = urlencode({'callbackUrl': callback_url})
                logging.info(f"No session for authorization request from client_id '{params.client_id}', redirecting to login")
                return RedirectResponse(url=f"{login_url}{separator}{callback}", status_code=302)

            code = grant.create_authorization_code(subject, params)
            return RedirectResponse(url=grant.build_redirect_uri(params, code), status_code=302)
        except Exception:
            logging.exception("Unhandled error in /authorize")
            return server_error_response()

    @app.post("/token")
    async def token(request: Request):
        logging.info("Received /token request")
        try:
            body = await read_body_params(request)
            token_response = grant.exchange(body)
            return token_response.model_dump()
        except OAuthError as e:
            return oauth_error_response(e)
        except Exception:
            logging.exception("Unhandled error in /token")
            return server_error_response()

    @app.get("/.well-known/oauth-authorization-server")
    async def authorization_server_metadata():
        base = config.public_url
        return {
            "issuer": base,
            "authorization_endpoint": f"{base}/authorize",
            "token_endpoint": f"{base}/token",
            "registration_endpoint": f"{base}/register",
            "response_types_supported": ["code"],
            "grant_types_supported": ["authorization_code"],
            "code_challenge_methods_supported": ["S256"],
            "token_endpoint_auth_methods_supported": ["none"],
        }

    @app.get("/.well-known/oauth-protected-resource")
    @app.get("/.well-known/oauth-protected-resource/{path:path}")
    async def protected_resource_metadata(path: str = ""):
        return {
            "resource": config.resource_url,
            "authorization_servers": [config.public_url],
            "bearer_methods_supported": ["header"],
        }

    @app.post("/register", status_code=201)
    async def register(request: Request):
        try:
            body = json.loads((await request.body()).decode('utf-8'))
            outcome = validate_request(ClientRegistrationRequest, body)
            if not outcome.success:
                return oauth_error_response(InvalidRequestError(format_errors(outcome.errors)))
            params = outcome.value

            client_id = f"mcp-client-{int(time.time() * 1000)}-{uuid.uuid4().hex}"
            registration = {
                "client_id": client_id,
                "client_id_issued_at": int(time.time()),
                "redirect_uris": params.redirect_uris,
                "token_endpoint_auth_method": "none",
                "grant_types": ["authorization_code"],
                "response_types": ["code"],
            }
            if params.client_name is not None:
                registration["client_name"] = params.client_name
            if params.client_uri is not None:
                registration["client_uri"] = params.client_uri
            logging.info(f"Registered client '{client_id}'")
            return JSONResponse(status_code=201, content=registration)
        except Exception:
            logging.exception("Unhandled error in /register")
            return server_error_response()

    async def get_token_from_header(authorization: Optional[str] = Header(None)):
        if authorization and authorization.startswith("Bearer "):
            return authorization[len("Bearer "):]
        return None

    @app.get("/protected-resource")
    async def protected_resource(token: Optional[str] = Depends(get_token_from_header)):
        if token is None:
            error = InvalidTokenError("Missing bearer token")
        else:
            claims = grant.verify_access_token(token)
            if claims is not None:
                return {"sub": claims["sub"], "client_id": claims.get("client_id")}
            error = InvalidTokenError("Invalid or expired access token")
        challenge = f'Bearer error="invalid_token", resource_metadata="{resource_metadata_url}"'
        return oauth_error_response(error, headers={"WWW-Authenticate": challenge})

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
