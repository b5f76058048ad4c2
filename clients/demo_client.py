from __future__ import annotations

import asyncio
import json
import os
import time

import httpx

from redpacket.client.addresses import ProgramAddresses
from redpacket.client.builders import (
    build_claim_instruction,
    build_create_instruction,
    build_init_treasury_instruction,
    sign_transaction,
)
from redpacket.crypto.derivation import Sha256AddressDeriver
from redpacket.crypto.keys import Keypair
from redpacket.envs.ledger_env import get_settings
from redpacket.infrastructure.ledger_client import AsyncLedgerClient


def print_json(label: str, model) -> None:
    print(f"{label}:\n{json.dumps(model.model_dump(mode='json'), indent=2)}")


async def ensure_native_treasury(
    client: AsyncLedgerClient, addresses: ProgramAddresses, payer: Keypair
) -> None:
    try:
        await client.get_treasury()
        return
    except httpx.HTTPStatusError as e:
        if e.response.status_code != 404:
            raise
    ix = build_init_treasury_instruction(addresses, payer.address)
    await client.submit_transaction(sign_transaction([ix], [payer]))
    print("Native treasury initialized")


async def run(base_url: str) -> None:
    settings = get_settings()
    addresses = ProgramAddresses(Sha256AddressDeriver(settings.program_id))

    creator = Keypair.generate()
    claimers = [Keypair.generate() for _ in range(2)]

    async with AsyncLedgerClient(base_url) as client:
        await client.airdrop(creator.address_b64, 5_000_000_000)
        for claimer in claimers:
            await client.airdrop(claimer.address_b64, 10_000_000)

        await ensure_native_treasury(client, addresses, creator)

        packet_id = int(time.time())
        create = build_create_instruction(
            addresses,
            creator.address,
            packet_id,
            total_amount=1_000_000_000,
            num_recipients=len(claimers),
            expires_at=int(time.time()) + 3600,
        )
        result = await client.submit_transaction(sign_transaction([create], [creator]))
        print_json("Create", result)

        for claimer in claimers:
            claim = build_claim_instruction(
                addresses, claimer.address, creator.address, packet_id
            )
            await client.submit_transaction(sign_transaction([claim], [claimer]))

        print_json("Red packet", await client.get_red_packet(creator.address_b64, packet_id))
        print_json("Treasury", await client.get_treasury())


def main() -> None:
    asyncio.run(run(os.getenv("REDPACKET_BASE_URL", "http://127.0.0.1:8000")))


if __name__ == "__main__":
    main()
