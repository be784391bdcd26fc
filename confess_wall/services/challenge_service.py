"""Human verification through an external challenge service."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx

from ..errors import MissingToken, VerificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeResult:
    """Verdict returned by the verification service."""

    success: bool
    error_codes: list[str] = field(default_factory=list)


class ChallengeVerifier(Protocol):
    async def verify(self, token: Optional[str], client_key: str) -> ChallengeResult: ...


class TurnstileVerifier:
    """Verify challenge tokens against a Turnstile-compatible siteverify endpoint."""

    def __init__(
        self,
        secret_key: str,
        verify_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the verifier.

        Args:
            secret_key: Shared secret issued by the verification service.
            verify_url: Siteverify endpoint.
            timeout: Upper bound in seconds for the outbound call.
            transport: Optional httpx transport, used to swap in a fake upstream.
        """
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.timeout = timeout
        self._transport = transport

    async def verify(self, token: Optional[str], client_key: str) -> ChallengeResult:
        """
        Check a challenge token for the given client.

        Raises:
            MissingToken: If no token was supplied. No request is made.
            VerificationError: If the service is unreachable, times out, or
                answers with something other than a verdict.
        """
        if not token:
            raise MissingToken()

        form = {
            "secret": self.secret_key,
            "response": token,
            "remoteip": client_key,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.verify_url, data=form)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Challenge verification failed (HTTP %d): %s",
                    e.response.status_code,
                    e.response.text,
                )
                raise VerificationError() from e
            except httpx.HTTPError as e:
                logger.error("Challenge verification request failed: %s", e)
                raise VerificationError() from e
            except ValueError as e:
                logger.error("Challenge verification returned invalid JSON: %s", e)
                raise VerificationError() from e

        if not isinstance(data, dict):
            logger.error("Unexpected challenge verification payload: %r", data)
            raise VerificationError()

        if data.get("success") is True:
            logger.debug("Challenge verified for %s", client_key)
            return ChallengeResult(success=True)

        error_codes = [str(code) for code in data.get("error-codes") or []]
        logger.info("Challenge rejected for %s: %s", client_key, error_codes)
        return ChallengeResult(success=False, error_codes=error_codes)
