# AuthorizationCodeGrant.py
import hmac
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode

from code_registry import RedeemedCodeRegistry
from models import AuthorizeRequest, OAuthConfig, ProofMethod, TokenRequest, TokenResponse
from oauth_errors import InvalidGrantError, InvalidRequestError
from pkce import verify_pkce
from request_validator import FieldError, format_errors, validate_request
from token_codec import TokenCodec, parse_duration

logger = logging.getLogger(__name__)

INVALID_CODE = "Invalid or expired authorization code"


class AuthorizationCodeGrant:
    """
    Authorization code issuance and exchange without a code store.

    The code is a signed token holding the whole grant context. Which proof
    mechanisms a client may bind to its code (PKCE, a shared client secret)
    is decided by ``config.allowed_proofs`` and ``config.require_pkce``.
    """

    def __init__(self, config: OAuthConfig, codec: TokenCodec = None,
                 registry: RedeemedCodeRegistry = None):
        self.config = config
        self.codec = codec or TokenCodec.from_config(config)
        if registry is None and config.single_use_codes:
            registry = RedeemedCodeRegistry(clock_skew_seconds=config.clock_skew_seconds)
        self.registry = registry
        self.access_token_lifetime = parse_duration(config.access_token_ttl)

    # --- /authorize ---

    def _policy_errors(self, raw: Mapping[str, Any]) -> List[FieldError]:
        # Read from the raw parameters so policy errors are reported alongside schema errors
        errors = []
        allowed = self.config.allowed_proofs
        challenge = raw.get("code_challenge")
        secret = raw.get("client_secret")
        if challenge not in (None, "") and ProofMethod.PKCE not in allowed:
            errors.append(("code_challenge", "PKCE is not enabled for this server"))
        if challenge is None and self.config.require_pkce:
            errors.append(("code_challenge", "Field required"))
        if secret not in (None, "") and ProofMethod.CLIENT_SECRET not in allowed:
            errors.append(("client_secret", "Client secret authentication is not enabled for this server"))
        return errors

    @staticmethod
    def _merge_errors(schema_errors: List[FieldError], policy_errors: List[FieldError]) -> List[FieldError]:
        reported = {path.split(".")[0] for path, _ in schema_errors}
        merged = schema_errors + [err for err in policy_errors if err[0] not in reported]
        order = list(AuthorizeRequest.model_fields)

        def position(err):
            field = err[0].split(".")[0]
            return order.index(field) if field in order else len(order)

        return sorted(merged, key=position)

    def validate_authorization_request(self, raw: Mapping[str, Any]) -> AuthorizeRequest:
        outcome = validate_request(AuthorizeRequest, raw)
        policy_errors = self._policy_errors(raw) if isinstance(raw, Mapping) else []
        errors = self._merge_errors(outcome.errors, policy_errors)
        if errors:
            description = format_errors(errors)
            logger.error(f"Invalid authorization request: {description}")
            raise InvalidRequestError(description)
        return outcome.value

    def create_authorization_code(self, subject: str, params: AuthorizeRequest) -> str:
        claims: Dict[str, Any] = {
            "sub": str(subject),
            "client_id": params.client_id,
            "redirect_uri": params.redirect_uri,
            "aud": self.config.audience,
            "jti": uuid.uuid4().hex,
        }
        # Absent, not null: the exchange only checks the proofs present here
        if params.code_challenge is not None:
            claims["code_challenge"] = params.code_challenge
        if params.client_secret is not None:
            claims["client_secret"] = params.client_secret
        code = self.codec.sign(claims, self.config.authorization_code_ttl)
        logger.info(f"Issued authorization code for client_id '{params.client_id}' to subject '{subject}'")
        return code

    @staticmethod
    def build_redirect_uri(params: AuthorizeRequest, code: str) -> str:
        separator = "&" if "?" in params.redirect_uri else "?"
        query = urlencode({"code": code, "state": params.state})
        return f"{params.redirect_uri}{separator}{query}"

    # --- /token ---

    def validate_token_request(self, raw: Any) -> TokenRequest:
        outcome = validate_request(TokenRequest, raw)
        if not outcome.success:
            description = format_errors(outcome.errors)
            logger.error(f"Invalid token request: {description}")
            raise InvalidRequestError(description)
        return outcome.value

    def _check_proof(self, claims: Dict[str, Any], params: TokenRequest) -> None:
        stored_secret = claims.get("client_secret")
        stored_challenge = claims.get("code_challenge")

        if stored_secret is not None:
            if params.client_secret is None or not hmac.compare_digest(
                    params.client_secret.encode("utf-8"), str(stored_secret).encode("utf-8")):
                logger.error(f"Client secret verification failed for client_id '{params.client_id}'")
                raise InvalidGrantError("Client secret verification failed")
        elif stored_challenge is not None:
            if params.code_verifier is None or not verify_pkce(params.code_verifier, stored_challenge):
                logger.error(f"PKCE verification failed for client_id '{params.client_id}'")
                raise InvalidGrantError("PKCE verification failed")
        elif params.client_secret is None and params.code_verifier is None:
            logger.error(f"Token request without proof of possession for client_id '{params.client_id}'")
            raise InvalidRequestError("Either client_secret or code_verifier is required")
        else:
            logger.error(f"Authorization code for client_id '{params.client_id}' carries no proof binding")
            raise InvalidGrantError("Authorization code is not bound to a client proof")

    def _redeem(self, claims: Dict[str, Any]) -> None:
        if self.registry is None:
            return
        jti = claims.get("jti")
        if not isinstance(jti, str) or not self.registry.claim(jti, claims["exp"]):
            raise InvalidGrantError(INVALID_CODE)

    def exchange(self, raw: Any) -> TokenResponse:
        params = self.validate_token_request(raw)

        result = self.codec.verify(params.code)
        if not result.success:
            logger.error(f"Authorization code rejected: {result.reason}")
            raise InvalidGrantError(INVALID_CODE)
        claims = result.payload

        if claims.get("client_id") != params.client_id:
            logger.error(f"Authorization code client_id mismatch for '{params.client_id}'")
            raise InvalidGrantError("Client ID does not match")

        if claims.get("redirect_uri") != params.redirect_uri:
            logger.error(f"Authorization code redirect_uri mismatch for '{params.client_id}'")
            raise InvalidGrantError("Redirect URI does not match")

        self._check_proof(claims, params)
        self._redeem(claims)

        access_token = self.codec.sign(
            {
                "sub": claims["sub"],
                "client_id": params.client_id,
                "aud": self.config.audience,
            },
            self.access_token_lifetime,
        )
        logger.info(f"Issued access_token for client_id '{params.client_id}' and subject '{claims['sub']}'")
        return TokenResponse(access_token=access_token, expires_in=self.access_token_lifetime)

    # --- bearer access tokens ---

    def verify_access_token(self, token: str) -> Optional[Dict[str, Any]]:
        result = self.codec.verify(token)
        if not result.success:
            logger.warning(f"Access token rejected: {result.reason}")
            return None
        if "redirect_uri" in result.payload:
            # authorization codes share the signing key; never accept one as a bearer token
            logger.warning("Authorization code presented as access token")
            return None
        return result.payload
