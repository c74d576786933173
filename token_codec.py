# token_codec.py
"""
HS256 signing and verification for authorization codes and access tokens.

Both kinds of credential are self-contained JWTs: the claim set is the whole
record, so verification has to establish signature, algorithm, issuer,
audience and expiry before any claim is trusted.
"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: Union[str, int]) -> int:
    """Convert ``"10m"``/``"24h"`` style durations (or plain seconds) to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise ValueError(f"Duration must be positive: {value}")
        return value
    if isinstance(value, str):
        if value.strip().isdigit():
            return parse_duration(int(value))
        match = _DURATION_RE.match(value)
        if match:
            return parse_duration(int(match.group(1)) * _UNIT_SECONDS[match.group(2)])
    raise ValueError(f"Invalid duration: {value!r}")


@dataclass(frozen=True)
class TokenVerification:
    success: bool
    payload: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, payload):
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, reason):
        return cls(success=False, reason=reason)


class TokenCodec:
    def __init__(self, secret: str, issuer: str, audience: str, clock_skew_seconds: int = 300):
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self.clock_skew_seconds = clock_skew_seconds

    @classmethod
    def from_config(cls, config):
        return cls(
            secret=config.jwt_secret,
            issuer=config.issuer,
            audience=config.audience,
            clock_skew_seconds=config.clock_skew_seconds,
        )

    def sign(self, claims: Dict[str, Any], expires_in: Union[str, int],
             issued_at: Optional[int] = None) -> str:
        now = int(time.time()) if issued_at is None else int(issued_at)
        to_encode = dict(claims)
        to_encode.setdefault("aud", self.audience)
        to_encode.update({
            "iat": now,
            "iss": self.issuer,
            "exp": now + parse_duration(expires_in),
        })
        return jwt.encode(to_encode, self.secret, algorithm=ALGORITHM, headers={"typ": "JWT"})

    def verify(self, token: str) -> TokenVerification:
        """Decode ``token``; every failure is reported as a result, never raised."""
        if not isinstance(token, str) or token.count(".") != 2:
            return TokenVerification.fail("malformed")
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                leeway=self.clock_skew_seconds,
                options={"require": ["exp", "iat", "iss"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenVerification.fail("expired")
        except jwt.InvalidSignatureError:
            return TokenVerification.fail("invalid_signature")
        except jwt.InvalidAlgorithmError:
            return TokenVerification.fail("invalid_algorithm")
        except jwt.InvalidIssuerError:
            return TokenVerification.fail("invalid_issuer")
        except jwt.InvalidAudienceError:
            return TokenVerification.fail("invalid_audience")
        except jwt.MissingRequiredClaimError:
            return TokenVerification.fail("missing_claim")
        except jwt.ImmatureSignatureError:
            return TokenVerification.fail("immature")
        except jwt.DecodeError:
            return TokenVerification.fail("malformed")
        except jwt.InvalidTokenError:
            return TokenVerification.fail("invalid")
        except (TypeError, ValueError) as e:
            logger.warning(f"Unexpected token decode failure: {type(e).__name__}")
            return TokenVerification.fail("malformed")
        return TokenVerification.ok(payload)
