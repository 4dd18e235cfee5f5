"""
Supabase mirror implementing RemoteMirror.
Copies document records into the ``processed_documents`` table. The supabase
client is synchronous, so calls run in the default executor.
"""
import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional

from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from .base import RemoteMirror
from ...domain.entities import DocumentRecord


def _number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def to_row(record: DocumentRecord, user_id: str) -> Dict[str, Any]:
    """Map a record onto the table's snake_case columns."""
    data = record.extracted_data
    return {
        "id": record.id,
        "user_id": user_id,
        "file_name": record.file_name,
        "file_type": record.file_type,
        "document_type": record.document_type.value,
        "document_date": data.document_date.isoformat() if data.document_date else None,
        "issuer": data.issuer,
        "document_number": data.document_number,
        "total_amount": _number(data.total_amount),
        "original_currency": data.original_currency,
        "total_amount_chf": _number(data.total_amount_chf),
        "vat_amount": _number(data.vat_amount),
        "vat_amount_chf": _number(data.vat_amount_chf),
        "net_amount": _number(data.net_amount),
        "net_amount_chf": _number(data.net_amount_chf),
        "expense_category": data.expense_category.value if data.expense_category else None,
        "status": record.status.value,
        "error_message": record.error_message,
        "created_at": record.uploaded_at.isoformat(),
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


class SupabaseMirror(RemoteMirror):
    """
    Supabase table mirror.
    Row-level security requires every row to carry the owning user id.
    """

    name = "supabase"

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        table_name: str,
        user_id: str,
        client: Optional[Client] = None
    ):
        """
        Initialize Supabase mirror.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key (or anon key with proper RLS)
            table_name: Table holding processed documents
            user_id: Owner written into every row
        """
        self.table_name = table_name
        self.user_id = user_id

        if client is not None:
            self.supabase = client
        else:
            self.supabase: Client = create_client(
                supabase_url,
                supabase_key,
                options=ClientOptions(
                    auto_refresh_token=True,
                    persist_session=False
                )
            )

    async def _run(self, func):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def upsert(self, record: DocumentRecord) -> None:
        row = to_row(record, self.user_id)

        def _upsert():
            return self.supabase.table(self.table_name).upsert(row).execute()

        await self._run(_upsert)

    async def delete(self, doc_id: str) -> None:
        def _delete():
            return self.supabase.table(self.table_name).delete().eq("id", doc_id).execute()

        await self._run(_delete)

    async def delete_many(self, doc_ids: List[str]) -> None:
        if not doc_ids:
            return

        def _delete_many():
            return self.supabase.table(self.table_name).delete().in_("id", doc_ids).execute()

        await self._run(_delete_many)
