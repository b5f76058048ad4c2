"""Account and decoded record query API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, status

from ...application.dtos import (
    AccountResponseDTO,
    AirdropRequestDTO,
    RedPacketResponseDTO,
    TreasuryResponseDTO,
)
from ...application.ledger_service import LedgerService
from ...domain.constants import U64_MAX
from ...domain.errors import ProgramError
from ..dependencies import get_ledger_service

router = APIRouter(tags=["accounts"])


def _to_response(account) -> AccountResponseDTO:
    return AccountResponseDTO(
        address_b64=account.address_b64,
        owner_b64=account.owner_b64,
        lamports=account.lamports,
        data_b64=account.data_b64,
    )


@router.get(
    "/accounts/{address_b64:path}",
    response_model=AccountResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_account(
    address_b64: str = Path(..., description="Base64 account address"),
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponseDTO:
    account = await service.get_account(address_b64)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return _to_response(account)


@router.post(
    "/airdrops",
    response_model=AccountResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
async def airdrop(
    payload: AirdropRequestDTO,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponseDTO:
    try:
        account = await service.airdrop(payload.address_b64, payload.lamports)
    except (ValueError, ProgramError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _to_response(account)


@router.get(
    "/red-packets/{creator_b64:path}/{packet_id}",
    response_model=RedPacketResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_red_packet(
    creator_b64: str,
    packet_id: int = Path(..., ge=0, le=U64_MAX, description="Creator-scoped packet id"),
    service: LedgerService = Depends(get_ledger_service),
) -> RedPacketResponseDTO:
    try:
        red_packet = await service.get_red_packet(creator_b64, packet_id)
    except (ValueError, ProgramError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if red_packet is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Red packet not found"
        )
    return red_packet


@router.get(
    "/treasuries/native",
    response_model=TreasuryResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_native_treasury(
    service: LedgerService = Depends(get_ledger_service),
) -> TreasuryResponseDTO:
    treasury = await service.get_treasury()
    if treasury is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treasury not found")
    return treasury


@router.get(
    "/treasuries/{mint_b64:path}",
    response_model=TreasuryResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_treasury(
    mint_b64: str,
    service: LedgerService = Depends(get_ledger_service),
) -> TreasuryResponseDTO:
    try:
        treasury = await service.get_treasury(mint_b64)
    except (ValueError, ProgramError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if treasury is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treasury not found")
    return treasury
