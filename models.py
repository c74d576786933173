# models.py

from enum import Enum
from typing import Annotated, FrozenSet, List, Literal, Optional
from urllib.parse import urlsplit

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


class ProofMethod(str, Enum):
    PKCE = "pkce"
    CLIENT_SECRET = "client_secret"


def check_absolute_url(value: str) -> str:
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        raise ValueError("Invalid url")
    if parts.fragment:
        raise ValueError("URL must not contain a fragment")
    return value


AbsoluteUrl = Annotated[str, AfterValidator(check_absolute_url)]
NonEmptyStr = Annotated[str, Field(min_length=1)]


class OAuthConfig(BaseModel):
    """Process-wide settings, loaded once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    jwt_secret: str = Field(min_length=32)
    session_secret: Optional[str] = None
    base_url: AbsoluteUrl = "http://localhost:3000"
    issuer: str = "mcp-memory"
    audience: str = "mcp-memory"
    resource_path: str = "/api/mcp"
    login_url: str = "/login"
    authorization_code_ttl: str = "10m"
    access_token_ttl: str = "24h"
    clock_skew_seconds: int = 300
    allowed_proofs: FrozenSet[ProofMethod] = frozenset({ProofMethod.PKCE, ProofMethod.CLIENT_SECRET})
    require_pkce: bool = False
    single_use_codes: bool = True
    allowed_origins: List[str] = []

    @property
    def public_url(self) -> str:
        return self.base_url.rstrip("/")

    @property
    def resource_url(self) -> str:
        return f"{self.public_url}{self.resource_path}"


class AuthorizeRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    client_id: NonEmptyStr
    redirect_uri: AbsoluteUrl
    response_type: Literal["code"]
    code_challenge: Optional[NonEmptyStr] = None
    code_challenge_method: Literal["S256"] = "S256"
    client_secret: Optional[NonEmptyStr] = None
    state: NonEmptyStr
    resource: Optional[AbsoluteUrl] = None


class TokenRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    grant_type: Literal["authorization_code"]
    code: NonEmptyStr
    client_id: NonEmptyStr
    redirect_uri: AbsoluteUrl
    code_verifier: Optional[NonEmptyStr] = None
    client_secret: Optional[NonEmptyStr] = None

    @model_validator(mode="after")
    def _single_proof(self):
        if self.code_verifier is not None and self.client_secret is not None:
            raise ValueError("Provide either client_secret or code_verifier, not both")
        return self


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int


class ClientRegistrationRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    redirect_uris: List[AbsoluteUrl]
    client_name: Optional[str] = None
    client_uri: Optional[AbsoluteUrl] = None
