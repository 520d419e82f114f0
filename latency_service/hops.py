"""
Hop chaining - simulates a multi-service call graph.

A request carrying `hops=N` makes this instance call the configured
downstream with `hops=N-1`, which may be another instance or itself.
The chain is bounded by N and every outbound call has a deadline.
"""
import logging
import re
from typing import Optional

import httpx

from latency_service.errors import DownstreamFailure, InvalidParameter

logger = logging.getLogger(__name__)

HOPS_PARAM = "hops"

_DIGITS = re.compile(r"[0-9]+")


def parse_hops(raw: Optional[str]) -> Optional[int]:
    """
    Parse the inbound hops value.

    Absent or empty means "no chaining" and returns None. Anything that is
    not a plain non-negative decimal integer raises InvalidParameter.
    """
    if raw is None or raw == "":
        return None
    if not _DIGITS.fullmatch(raw):
        raise InvalidParameter(HOPS_PARAM, raw)
    try:
        return int(raw)
    except ValueError:
        # int() refuses overly long digit strings
        raise InvalidParameter(HOPS_PARAM, raw) from None


class HopChainClient:
    """Issues at most one outbound call per request to the next hop."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient()

    async def chain(self, remaining_hops: Optional[int], downstream_url: str, timeout: float) -> bytes:
        """
        Call the next hop with the remaining depth decremented.

        Returns the downstream body unmodified, or b"" when no call is due:
        no hops requested, chaining disabled, or this is the terminal hop.
        """
        if remaining_hops is None or not downstream_url or remaining_hops <= 0:
            return b""

        next_hops = remaining_hops - 1
        try:
            # Merge into the configured query string rather than replace it
            url = httpx.URL(downstream_url).copy_merge_params({HOPS_PARAM: str(next_hops)})
            response = await self.client.get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise DownstreamFailure(f"timed out after {timeout}s ({type(e).__name__})") from e
        except httpx.HTTPError as e:
            raise DownstreamFailure(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise DownstreamFailure(f"{response.status_code} {response.text.strip()}")

        logger.debug(f"Next hop answered url={downstream_url} hops={next_hops} bytes={len(response.content)}")
        return response.content

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()
