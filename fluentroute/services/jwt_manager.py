"""
FluentRoute - JWT Manager
==========================

What:  Issues and verifies HMAC-signed compact JWTs.
How:   python-jose derives the HMAC key from the configured secret
       (``jwk.construct``) and signs/verifies with it. The jose calls are
       synchronous, so they run in Starlette's threadpool.
Who:   Application code and the ``authenticate`` route middleware.

Both operations return result envelopes (schemas/envelope.py) and never raise:
    issue(claims)  → Success(data=token)   | Failure(code=500)
    verify(token)  → Success(data=claims)  | Failure(code=401 for invalid tokens)

Standard claims added by ``issue``:
    iss  JWTSettings.issuer
    sub  JWTSettings.subject      (any JSON value; verify skips jose's string check)
    iat  now
    exp  now + JWTSettings.expires_in
Caller claims override the standard ones.
"""

import logging
import time
from typing import Any, Dict, Optional

from jose import JWTError, jwk, jwt
from jose.backends.base import Key
from starlette.concurrency import run_in_threadpool

from fluentroute.config import JWTSettings
from fluentroute.exceptions import ConfigurationError
from fluentroute.schemas.envelope import Envelope, Failure, Success
from fluentroute.services.responses import build_response

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class JWTManager:
    """
    Token issuer/verifier bound to one signing secret.

    The secret is required at construction, so every instance can sign.
    """

    def __init__(self, settings: JWTSettings):
        if not settings.secret:
            raise ConfigurationError(
                "Missing JWT secret. Set JWT_SECRET or pass JWTSettings(secret=...)"
            )
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: Optional[JWTSettings] = None) -> "JWTManager":
        """Build a manager from explicit settings or from the environment."""
        return cls(settings or JWTSettings())

    @property
    def algorithm(self) -> str:
        return self._settings.algorithm

    async def _derive_key(self) -> Key:
        return await run_in_threadpool(jwk.construct, self._settings.secret, self.algorithm)

    async def issue(
        self,
        claims: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, Any]] = None,
    ) -> Envelope:
        """
        Sign ``claims`` merged over the standard claims.

        Args:
            claims:  Custom claims; a caller-supplied ``exp``/``sub``/``iss``
                     replaces the default.
            headers: Extra JOSE header fields (``alg`` and ``typ`` are set by jose).
        """
        now = int(time.time())
        payload: Dict[str, Any] = {
            "iss": self._settings.issuer,
            "sub": self._settings.subject,
            "iat": now,
            "exp": now + self._settings.expires_in,
        }
        payload.update(claims or {})

        try:
            key = await self._derive_key()
            token = await run_in_threadpool(
                jwt.encode, payload, key, algorithm=self.algorithm, headers=headers
            )
        except Exception as exc:  # noqa: BLE001 - reported through the envelope
            logger.error("Failed to issue token: %s", exc)
            return build_response(Failure(error=exc))

        return Success(data=token)

    async def verify(self, token: Any) -> Envelope:
        """
        Check the signature and expiry of ``token``.

        An optional ``Bearer `` prefix is stripped, so a raw Authorization
        header value can be passed directly.
        """
        if not isinstance(token, str):
            return build_response(
                Failure(message="Token must be a string", code=401, error_type="JWTError")
            )

        raw = token.strip()
        if raw.startswith(BEARER_PREFIX):
            raw = raw[len(BEARER_PREFIX):].strip()

        try:
            key = await self._derive_key()
            # sub is not type-checked so claims issued with a numeric subject round-trip
            claims = await run_in_threadpool(
                jwt.decode,
                raw,
                key,
                algorithms=[self.algorithm],
                options={"verify_aud": False, "verify_sub": False},
            )
        except JWTError as exc:
            logger.info("Token rejected: %s", exc)
            return build_response(
                Failure(
                    error=exc,
                    message=str(exc) or "Invalid token",
                    code=401,
                    error_type=type(exc).__name__,
                )
            )
        except Exception as exc:  # noqa: BLE001 - reported through the envelope
            logger.error("Failed to verify token: %s", exc)
            return build_response(Failure(error=exc))

        return Success(data=claims)
