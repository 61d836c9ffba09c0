"""Memo Repository - Data access for memos and acknowledgments"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from .mongo_client import get_collection, to_document, from_document, MEMOS, MEMO_ACKNOWLEDGMENTS
from ..domain.enums import MemoStatus
from ..domain.models import Memo, MemoAcknowledgment
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MemoRepository:
    """Repository for memo documents"""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._memos = get_collection(MEMOS, db)

    @staticmethod
    def _to_model(doc: Optional[Dict[str, Any]]) -> Optional[Memo]:
        if doc is None:
            return None
        return Memo.model_validate(from_document(doc))

    async def get_memo(self, memo_id: str) -> Optional[Memo]:
        return self._to_model(await self._memos.find_one({"memo_id": memo_id}))

    async def create_memo(self, memo: Memo) -> Memo:
        await self._memos.insert_one(to_document(memo.model_dump()))
        logger.info(f"Created memo {memo.memo_id}", extra={"memo_id": memo.memo_id})
        return memo

    async def update_if_status(
        self,
        memo_id: str,
        expected_status: MemoStatus,
        set_fields: Dict[str, Any],
        unset_fields: Iterable[str] = ()
    ) -> Optional[Memo]:
        """
        Compare-and-set update keyed on the memo's current status

        Returns None when the memo is missing or its status moved on.
        """
        update: Dict[str, Any] = {"$set": to_document(set_fields)}
        unset = {field: "" for field in unset_fields if field not in set_fields}
        if unset:
            update["$unset"] = unset

        doc = await self._memos.find_one_and_update(
            {"memo_id": memo_id, "status": MemoStatus(expected_status).value},
            update,
            return_document=ReturnDocument.AFTER
        )
        return self._to_model(doc)


class AcknowledgmentRepository:
    """Repository for per-recipient memo acknowledgments"""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._acks = get_collection(MEMO_ACKNOWLEDGMENTS, db)

    async def upsert_sent(self, memo_id: str, recipient_ids: Iterable[str], sent_at: datetime) -> int:
        """Create or reset acknowledgment rows for recipients; returns rows touched"""
        touched = 0
        for recipient_id in dict.fromkeys(recipient_ids):
            await self._acks.update_one(
                {"memo_id": memo_id, "recipient_id": recipient_id},
                {
                    "$set": {"sent_at": to_document(sent_at), "is_acknowledged": False},
                    "$unset": {"acknowledged_at": ""}
                },
                upsert=True
            )
            touched += 1
        return touched

    async def acknowledge(self, memo_id: str, recipient_id: str, acknowledged_at: datetime) -> Optional[MemoAcknowledgment]:
        doc = await self._acks.find_one_and_update(
            {"memo_id": memo_id, "recipient_id": recipient_id},
            {"$set": {"is_acknowledged": True, "acknowledged_at": to_document(acknowledged_at)}},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            return None
        return MemoAcknowledgment.model_validate(from_document(doc))

    async def count(self, memo_id: str, acknowledged: Optional[bool] = None) -> int:
        query: Dict[str, Any] = {"memo_id": memo_id}
        if acknowledged is not None:
            query["is_acknowledged"] = acknowledged
        return await self._acks.count_documents(query)
