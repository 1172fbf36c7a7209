"""Feedback sent by supervisors to the fiscal responsible for an activity."""

from __future__ import annotations

import logging
import re
from typing import Any

from activity_log.core.document_store import DocumentStore, StoredDocument
from activity_log.core.exceptions import MissingIndexError, PermissionDeniedError, ValidationError
from activity_log.core.timestamps import parse_iso_timestamp, to_iso_timestamp, utc_now_iso
from activity_log.models.feedback import Feedback, FeedbackInput
from activity_log.services.user_profiles import UserProfileRepository, profile_role

logger = logging.getLogger(__name__)

FEEDBACKS_COLLECTION = "feedbacks"
SUPERVISOR_ROLE = "supervisor"
FISCAL_ROLE = "fiscal"
MAX_LATEST_FEEDBACKS = 10

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"</(p|div|br|li|tr)>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")


def sanitize_html(html: str) -> str:
    return _SCRIPT_RE.sub("", html)


def html_to_text(html: str) -> str:
    text = _STYLE_RE.sub("", html)
    text = _SCRIPT_RE.sub("", text)
    text = _BLOCK_END_RE.sub("\n", text)
    text = _TAG_RE.sub(" ", text)
    text = re.sub(r"\s+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    return text.strip()


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def map_feedback(doc_id: str, data: dict[str, Any]) -> Feedback:
    return Feedback(
        id=doc_id,
        subject=data.get("subject") if isinstance(data.get("subject"), str) else "",
        content_html=data.get("contentHtml") if isinstance(data.get("contentHtml"), str) else "",
        content_text=data.get("contentText") if isinstance(data.get("contentText"), str) else "",
        author_email=data.get("authorEmail") if isinstance(data.get("authorEmail"), str) else "",
        author_name=data.get("authorName") if isinstance(data.get("authorName"), str) else "",
        activity_id=data.get("activityId") if isinstance(data.get("activityId"), str) else None,
        target_email=data.get("targetEmail") if isinstance(data.get("targetEmail"), str) else None,
        created_at=to_iso_timestamp(data.get("createdAt")),
    )


def _newest_first(documents: list[StoredDocument]) -> list[Feedback]:
    feedbacks = [map_feedback(doc.id, doc.data) for doc in documents]
    return sorted(feedbacks, key=lambda f: parse_iso_timestamp(f.created_at) or 0.0, reverse=True)


class FeedbackService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.profiles = UserProfileRepository(store)

    async def submit_feedback(self, payload: FeedbackInput, user_email: str) -> Feedback:
        content_html = _text(payload.content_html)
        if not content_html:
            raise ValidationError("contentHtml", "Feedback content is required.")

        author_email = user_email.strip().lower()
        profile = await self.profiles.get(author_email) or {}
        if profile_role(profile).lower() != SUPERVISOR_ROLE:
            raise PermissionDeniedError("Only supervisors can send feedback.")

        activity_id = _text(payload.activity_id)
        target_email = _text(payload.target_email).lower()
        if not activity_id:
            raise ValidationError("activityId", "The activity identifier is required.")
        if not target_email:
            raise ValidationError("targetEmail", "The email of the responsible fiscal is required.")

        sanitized = sanitize_html(payload.content_html)
        author_name = _text(profile.get("name")) or author_email

        data = {
            "subject": _text(payload.subject) or f"Feedback do supervisor {author_name}",
            "contentHtml": sanitized,
            "contentText": _text(payload.content_text) or html_to_text(sanitized),
            "authorEmail": author_email,
            "authorName": author_name,
            "activityId": activity_id,
            "targetEmail": target_email,
            "createdAt": utc_now_iso(),
        }

        stored = await self.store.add(FEEDBACKS_COLLECTION, data)
        logger.info("Feedback %s sent by %s for activity %s", stored.id, author_email, activity_id)
        return map_feedback(stored.id, stored.data)

    async def latest_feedbacks(self, user_email: str, limit: int = 1) -> list[Feedback]:
        role = (await self.profiles.resolve_role(user_email)).lower()
        if role not in (FISCAL_ROLE, SUPERVISOR_ROLE):
            raise PermissionDeniedError("Access not allowed.")

        limit = min(max(limit, 1), MAX_LATEST_FEEDBACKS)
        try:
            documents = await self.store.query(
                FEEDBACKS_COLLECTION, order_by="createdAt", descending=True, limit=limit
            )
        except MissingIndexError:
            return _newest_first(await self.store.query(FEEDBACKS_COLLECTION))[:limit]

        return [map_feedback(doc.id, doc.data) for doc in documents]

    async def feedback_for_activity(self, activity_id: str, user_email: str) -> Feedback | None:
        activity_id = activity_id.strip()
        if not activity_id:
            raise ValidationError("activityId", "The 'activityId' parameter is required.")

        filters = {"activityId": activity_id}
        try:
            documents = await self.store.query(
                FEEDBACKS_COLLECTION, order_by="createdAt", descending=True, limit=1, filters=filters
            )
            latest = map_feedback(documents[0].id, documents[0].data) if documents else None
        except MissingIndexError:
            logger.info("No composite index for feedback by activity, sorting in memory")
            ordered = _newest_first(await self.store.query(FEEDBACKS_COLLECTION, filters=filters))
            latest = ordered[0] if ordered else None

        if latest is None:
            return None

        requester = user_email.strip().lower()
        allowed = {(latest.target_email or "").lower(), latest.author_email.lower()}
        if requester not in allowed:
            raise PermissionDeniedError("Access not allowed.")
        return latest

    async def feedbacks_for_target(self, user_email: str) -> tuple[list[str], list[Feedback]]:
        requester = user_email.strip().lower()
        documents = await self.store.query(FEEDBACKS_COLLECTION, filters={"targetEmail": requester})
        feedbacks = [map_feedback(doc.id, doc.data) for doc in documents]

        activity_ids = list(dict.fromkeys(f.activity_id for f in feedbacks if f.activity_id))
        return activity_ids, feedbacks
