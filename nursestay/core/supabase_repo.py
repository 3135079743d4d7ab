from __future__ import annotations

import os
from typing import Any

from supabase import Client, create_client


LISTINGS_TABLE = "listings"
BLOCKS_TABLE = "availability_blocks"


class SupabaseRepo:
    def __init__(
        self,
        url: str | None = None,
        service_role_key: str | None = None,
        client: Client | None = None,
    ) -> None:
        if client is not None:
            self.client = client
            return
        supabase_url = url or os.environ.get("SUPABASE_URL")
        supabase_key = service_role_key or os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required.")
        self.client = create_client(supabase_url, supabase_key)

    def get_listings(self, limit: int | None = None) -> list[dict[str, Any]]:
        query = self.client.table(LISTINGS_TABLE).select("*").order("id")
        if limit:
            query = query.limit(limit)
        return query.execute().data or []

    def get_listing(self, listing_id: int) -> dict[str, Any] | None:
        rows = self.client.table(LISTINGS_TABLE).select("*").eq("id", listing_id).limit(1).execute().data or []
        return rows[0] if rows else None

    def get_listing_host_id(self, listing_id: int) -> str | None:
        rows = (
            self.client.table(LISTINGS_TABLE)
            .select("host_id")
            .eq("id", listing_id)
            .limit(1)
            .execute()
            .data
            or []
        )
        return rows[0].get("host_id") if rows else None

    def get_listing_blocks(self, listing_id: int) -> list[dict[str, Any]]:
        return (
            self.client.table(BLOCKS_TABLE)
            .select("*")
            .eq("listing_id", listing_id)
            .order("start_date")
            .execute()
            .data
            or []
        )

    def get_block(self, block_id: str) -> dict[str, Any] | None:
        """Block row with the owning listing embedded under "listings"."""
        rows = (
            self.client.table(BLOCKS_TABLE)
            .select("*, listings(host_id, title)")
            .eq("id", block_id)
            .limit(1)
            .execute()
            .data
            or []
        )
        return rows[0] if rows else None

    def insert_block(self, row: dict[str, Any]) -> dict[str, Any]:
        response = self.client.table(BLOCKS_TABLE).insert(row).execute()
        return (response.data or [{}])[0]

    def update_block(self, block_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        response = self.client.table(BLOCKS_TABLE).update(updates).eq("id", block_id).execute()
        return (response.data or [{}])[0]

    def delete_block(self, block_id: str) -> None:
        self.client.table(BLOCKS_TABLE).delete().eq("id", block_id).execute()
