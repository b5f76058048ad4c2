"""Asynchronous HTTP client for the ledger API."""

from __future__ import annotations

from typing import Any, Optional, Type
from types import TracebackType
from urllib.parse import quote

import httpx

from ..application.dtos import (
    AccountResponseDTO,
    AirdropRequestDTO,
    RedPacketResponseDTO,
    TransactionDTO,
    TransactionErrorDTO,
    TransactionResultDTO,
    TreasuryResponseDTO,
)


class TransactionRejected(Exception):
    """The ledger refused a transaction; nothing was committed."""

    def __init__(self, detail: TransactionErrorDTO):
        self.detail = detail
        super().__init__(f"{detail.error} (code={detail.code}): {detail.message}")


class AsyncLedgerClient:
    """Async client bound to the ledger application DTOs.

    - Normalizes the base URL and applies a default timeout.
    - Raises `TransactionRejected` for program errors, and `httpx.HTTPStatusError`
      for any other non-successful response.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _url(self, path: str) -> str:
        return f"{self._base_url}/api/v1/{path.lstrip('/')}"

    async def _get(self, path: str) -> Any:
        resp = await self._client.get(self._url(path))
        resp.raise_for_status()
        return resp.json()

    async def submit_transaction(self, dto: TransactionDTO) -> TransactionResultDTO:
        resp = await self._client.post(
            self._url("transactions"), json=dto.model_dump(mode="json")
        )
        if resp.status_code == httpx.codes.BAD_REQUEST:
            body = resp.json()
            if "error" in body:
                raise TransactionRejected(TransactionErrorDTO.model_validate(body))
        resp.raise_for_status()
        return TransactionResultDTO.model_validate(resp.json())

    async def airdrop(self, address_b64: str, lamports: int) -> AccountResponseDTO:
        dto = AirdropRequestDTO(address_b64=address_b64, lamports=lamports)
        resp = await self._client.post(self._url("airdrops"), json=dto.model_dump())
        resp.raise_for_status()
        return AccountResponseDTO.model_validate(resp.json())

    async def get_account(self, address_b64: str) -> AccountResponseDTO:
        data = await self._get(f"accounts/{quote(address_b64, safe='')}")
        return AccountResponseDTO.model_validate(data)

    async def get_red_packet(
        self, creator_b64: str, packet_id: int
    ) -> RedPacketResponseDTO:
        data = await self._get(f"red-packets/{quote(creator_b64, safe='')}/{packet_id}")
        return RedPacketResponseDTO.model_validate(data)

    async def get_treasury(self, mint_b64: Optional[str] = None) -> TreasuryResponseDTO:
        path = "native" if mint_b64 is None else quote(mint_b64, safe="")
        data = await self._get(f"treasuries/{path}")
        return TreasuryResponseDTO.model_validate(data)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncLedgerClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
