"""
Phant sink for scale records

Phant is the data logging HTTP API behind data.sparkfun.com. A record is
posted as query parameters under the stream's public key, authorized by
the stream's private key.
"""

import logging

import aiohttp

from scale_gateway.errors import UploadError
from scale_gateway.types import StreamKeys

logger = logging.getLogger(__name__)

PRIVATE_KEY_HEADER = "Phant-Private-Key"

# Responses with status below this value are successful
SUCCESS_STATUS_LIMIT = 300


class PhantSink:
    """Sink posting scale records to a Phant stream"""

    def __init__(self, base_url: str, session: aiohttp.ClientSession | None = None):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._own_session = session is None

    async def send(self, keys: StreamKeys, record: dict[str, float]) -> None:
        """
        Send record to the stream.

        Args:
            keys: Public and private key of the stream
            record: Field names and values, not url encoded

        Raises:
            UploadError: on missing keys, non-success response or transfer error
        """
        if not keys.public_key:
            raise UploadError("Missing or empty publicKey field in stream keys")
        if not keys.private_key:
            raise UploadError("Missing or empty privateKey field in stream keys")

        url = f"{self.base_url}/input/{keys.public_key}"
        params = {name: str(value) for name, value in record.items()}
        headers = {PRIVATE_KEY_HEADER: keys.private_key}

        if self._session is None:
            self._session = aiohttp.ClientSession()

        # values work only in the query string, not in the body
        try:
            async with self._session.post(url, params=params, headers=headers) as response:
                status = response.status
                body = await response.text(errors="replace")
        except aiohttp.ClientError as e:
            raise UploadError(f"https transfer error: {e}") from e
        except Exception as e:
            raise UploadError(f"Unexpected upload failure: {e!r}") from e

        if status >= SUCCESS_STATUS_LIMIT:
            raise UploadError(f"HTTP code {status}: {body.strip()}")

        logger.debug("Posted %s to %s", params, url)

    async def close(self) -> None:
        if self._own_session and self._session is not None:
            await self._session.close()
            self._session = None
