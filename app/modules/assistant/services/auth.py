# Works with BOTH HS-signed and RS/ES-signed Supabase JWTs.
# -----
# ▸ HS256 projects       → set env SUPABASE_JWT_SECRET
# ▸ signing-key projects → keys come from the project's JWKS endpoint

from dataclasses import dataclass
from typing import Optional
import logging

import anyio
import jwt as pyjwt
from jose import JWTError, jwt
from jwt import PyJWKClient

from .errors import AuthError

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = ("RS256", "ES256")


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None


class SupabaseIdentityProvider:
    def __init__(
        self,
        supabase_url: str = "",
        jwt_secret: Optional[str] = None,
        jwk_client: Optional[PyJWKClient] = None,
    ):
        self._jwt_secret = jwt_secret
        if jwk_client is None and supabase_url:
            jwk_client = PyJWKClient(f"{supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json")
        self._jwk_client = jwk_client

    async def resolve(self, token: str) -> Identity:
        """
        Verify a bearer token and return who it belongs to.

        Raises:
            AuthError: for any token that can't be verified.
        """
        if not token:
            raise AuthError("missing token")
        # JWKS lookups are blocking HTTP calls
        claims = await anyio.to_thread.run_sync(self._decode, token)
        user_id = claims.get("sub")
        if not user_id:
            raise AuthError("sub claim missing")
        return Identity(user_id=str(user_id), email=(claims.get("email") or None))

    def _decode(self, token: str) -> dict:
        try:
            hdr = jwt.get_unverified_header(token)
        except JWTError as e:
            raise AuthError("malformed token") from e
        alg = hdr.get("alg")

        # ── Legacy HS256 projects ─────────────────────────
        if alg == "HS256":
            if not self._jwt_secret:
                logger.error("[auth] HS256 token received but SUPABASE_JWT_SECRET is not set")
                raise AuthError("no secret configured")
            try:
                return jwt.decode(
                    token,
                    self._jwt_secret,
                    algorithms=["HS256"],
                    options={"verify_aud": False},
                )
            except JWTError as e:
                raise AuthError("invalid token") from e

        # ── Signing-key projects (RS256 / ES256) ──────────
        if alg not in ASYMMETRIC_ALGORITHMS:
            raise AuthError(f"unsupported alg {alg!r}")
        if self._jwk_client is None:
            logger.error(f"[auth] {alg} token received but SUPABASE_URL is not set")
            raise AuthError("no JWKS endpoint configured")
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
            return pyjwt.decode(
                token,
                signing_key.key,
                algorithms=[alg],
                options={"verify_aud": False},
            )
        except pyjwt.PyJWTError as e:
            raise AuthError("invalid token") from e
