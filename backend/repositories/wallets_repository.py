"""Repository interfaces and adapters for reading wallets."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol

from backend.db.supabase_client import SupabaseClient, fetch_all_rows
from shared.models import Wallet


class WalletsRepository(Protocol):
    def list_wallets(self, user_id: int, *, include_archived: bool = False) -> list[Wallet]:
        """Return the user's wallets, archived ones only when requested."""


class InMemoryWalletsRepository:
    """In-memory wallets repository used by tests/dev."""

    def __init__(self, wallets: list[Wallet] | None = None) -> None:
        self._wallets: list[Wallet] = list(wallets or [])

    def add(self, wallet: Wallet) -> Wallet:
        self._wallets.append(wallet)
        return wallet

    def list_wallets(self, user_id: int, *, include_archived: bool = False) -> list[Wallet]:
        return sorted(
            [
                wallet
                for wallet in self._wallets
                if wallet.user_id == user_id and (include_archived or not wallet.is_archived)
            ],
            key=lambda wallet: wallet.id,
        )


class SupabaseWalletsRepository:
    """Supabase-backed wallets repository."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> Wallet:
        return Wallet(
            id=int(row["wallet_id"]),
            user_id=int(row["user_id"]),
            name=str(row.get("wallet_name") or ""),
            balance=Decimal(str(row.get("balance") or "0")),
            is_archived=bool(row.get("is_archived")),
            type=row.get("type"),
            color=row.get("color"),
        )

    def list_wallets(self, user_id: int, *, include_archived: bool = False) -> list[Wallet]:
        query: list[tuple[str, str | int]] = [
            ("select", "wallet_id,user_id,wallet_name,balance,is_archived,type,color"),
            ("user_id", f"eq.{int(user_id)}"),
        ]
        if not include_archived:
            query.append(("is_archived", "eq.false"))
        rows = fetch_all_rows(self._client, table="wallets", query=query, order="wallet_id.asc")
        return [self._parse_row(row) for row in rows]
