"""
Chat scope resolution.

Decides what a turn does from three facts:

    bound document kind   requested mode   ready documents   → scope
    ───────────────────   ──────────────   ───────────────     ─────────────
    FILE                  any              —                   DOCUMENT
    WEB_CHAT              any              —                   WEB
    ALL_DOCUMENTS         any              —                   ALL_DOCUMENTS
    none                  auto / web       —                   WEB
    none                  document         ≥ 1                 ALL_DOCUMENTS
    none                  document         0                   ValidationError

A bound document (from the thread, or from an explicit document id) always
wins, so a thread never changes scope once created.
"""

from typing import Optional

from docchat.errors import ValidationError
from docchat.models import ChatMode, ChatScope, DocumentKind

NO_READY_DOCUMENTS = "처리 완료된 문서가 없습니다. 먼저 문서를 업로드하고 처리 완료를 기다려주세요."

_SCOPE_BY_KIND = {
    DocumentKind.FILE: ChatScope.DOCUMENT,
    DocumentKind.WEB_CHAT: ChatScope.WEB,
    DocumentKind.ALL_DOCUMENTS: ChatScope.ALL_DOCUMENTS,
}


def resolve_chat_scope(
    requested_mode: ChatMode,
    bound_kind: Optional[DocumentKind],
    ready_document_count: int = 0,
) -> ChatScope:
    """
    Args:
        requested_mode: What the caller asked for.
        bound_kind: Kind of the document the thread/request points at, if any.
        ready_document_count: Only consulted for an unbound 'document' request.
    """
    if bound_kind is not None:
        return _SCOPE_BY_KIND[bound_kind]

    if requested_mode == ChatMode.DOCUMENT:
        if ready_document_count <= 0:
            raise ValidationError(NO_READY_DOCUMENTS)
        return ChatScope.ALL_DOCUMENTS

    return ChatScope.WEB
