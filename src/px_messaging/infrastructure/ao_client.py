"""AoConnectClient — MessengerProtocol over the AO messenger and compute units.

  submit  → POST {mu}/            signed data item, returns the message id
  dryrun  → POST {cu}/dry-run     read-only evaluation, nothing is committed
  result  → GET  {cu}/result/<id> messages caused by an evaluated message

No retries here: retrying is the correlation protocol's job.
"""
import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx

from src.px_common.errors import UpstreamUnavailableError
from src.px_messaging.domain.models import AoMessage, ProcessResult, Tag
from src.px_messaging.domain.repository import Signer

logger = logging.getLogger(__name__)

# Placeholder identity fields the CU expects on a dryrun
_DRYRUN_PLACEHOLDER = "1234"


class AoConnectClient:
    def __init__(self, mu_url: str, cu_url: str, client: httpx.AsyncClient) -> None:
        self.mu_url = mu_url.rstrip("/")
        self.cu_url = cu_url.rstrip("/")
        self._client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        start = time.perf_counter()
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            body = response.json()
        except httpx.RequestError as exc:
            logger.warning("%s %s NETWORK_ERROR: %s", method, url, exc)
            raise UpstreamUnavailableError(f"Request to {url} failed: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning("%s %s → %d", method, url, exc.response.status_code)
            raise UpstreamUnavailableError(
                f"Server returned HTTP code {exc.response.status_code} for {url}"
            ) from exc
        except ValueError as exc:
            raise UpstreamUnavailableError(f"Invalid JSON from {url}") from exc

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("%s %s → %d (%.0fms)", method, url, response.status_code, elapsed_ms)
        return body

    async def submit(
        self, target: str, tags: Sequence[Tag], signer: Signer, data: str = ""
    ) -> str:
        signed = await signer.sign(target, tags, data)
        body = await self._request(
            "POST",
            f"{self.mu_url}/",
            content=signed.raw,
            headers={
                "Content-Type": "application/octet-stream",
                "Accept": "application/json",
            },
        )
        message_id = body.get("id") if isinstance(body, dict) else None
        message_id = message_id or signed.id
        logger.info("Submitted message %s to %s", message_id, target)
        return message_id

    async def dryrun(self, target: str, tags: Sequence[Tag]) -> ProcessResult:
        body = await self._request(
            "POST",
            f"{self.cu_url}/dry-run",
            params={"process-id": target},
            json={
                "Id": _DRYRUN_PLACEHOLDER,
                "Target": target,
                "Owner": _DRYRUN_PLACEHOLDER,
                "Anchor": "0",
                "Data": _DRYRUN_PLACEHOLDER,
                "Tags": [{"name": t.name, "value": t.value} for t in tags],
            },
        )
        return _parse_process_result(body, target)

    async def result(self, message_id: str, process_id: str) -> ProcessResult:
        body = await self._request(
            "GET",
            f"{self.cu_url}/result/{message_id}",
            params={"process-id": process_id},
        )
        return _parse_process_result(body, process_id)


def _parse_process_result(body: Any, process_id: str) -> ProcessResult:
    if not isinstance(body, dict):
        raise UpstreamUnavailableError(f"Malformed result from process {process_id}")
    try:
        messages = [AoMessage.from_cu(m, process_id) for m in body.get("Messages") or []]
    except (KeyError, TypeError, AttributeError) as exc:
        raise UpstreamUnavailableError(f"Malformed result from process {process_id}") from exc
    error = body.get("Error")
    return ProcessResult(messages=messages, error=str(error) if error else None)
