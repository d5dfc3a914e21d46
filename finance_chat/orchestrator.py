"""
Main Orchestrator for Finance Chat

This module ties together all the components and defines the
end-to-end flow for one assistant reply:

    reply text → scan markers → reconcile in order → sanitize → summarize

DESIGN DECISION: The orchestrator enforces the boundaries:
- Markers are applied in the order they appear, one at a time
- A failed marker never blocks the ones after it
- The user never sees raw marker syntax
- Every step is audited under one correlation id

This is the "glue" that ensures the system works correctly
even when the assistant writes something unexpected.
"""

import logging
from typing import Optional, Sequence
from uuid import UUID

import structlog
from pydantic import ValidationError as SettingsError

from finance_chat.agents import AssistantAgent, AssistantError, ChatMessage
from finance_chat.audit import AuditLogger, create_correlation_id
from finance_chat.config import LedgerSettings, get_settings
from finance_chat.markers import sanitize, scan_markers
from finance_chat.models.ledger import Wallet
from finance_chat.models.results import ChatReplyResult
from finance_chat.reconciliation import Reconciler
from finance_chat.services.cache import UserWalletCache
from finance_chat.services.storage import (
    AuditStorageInterface,
    BackendUnavailableError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)


logger = structlog.get_logger(__name__)


class ChatReplyFlow:
    """
    Orchestrates processing of assistant replies.

    Flow:
    1. Scan → Extract directives; malformed markers become omissions
    2. Reconcile → Commit each directive, refreshing wallets after commits
    3. Sanitize → Strip every marker from the display text
    4. Summarize → Report partial success without hiding failures

    The assistant is optional: without it, process_reply still works on
    text produced elsewhere.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        reconciler: Optional[Reconciler] = None,
        cache: Optional[UserWalletCache] = None,
        audit_logger: Optional[AuditLogger] = None,
        assistant: Optional[AssistantAgent] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._storage = storage
        self._audit_logger = audit_logger
        self._reconciler = reconciler or Reconciler(
            storage,
            settings=self._settings,
            audit_logger=audit_logger,
        )
        if cache is None:
            cache = UserWalletCache(self._settings.wallet_cache_ttl_seconds)
        self._cache = cache
        self._assistant = assistant

    async def _load_wallets(self, user_id: UUID) -> list[Wallet]:
        return await self._cache.get_or_load(user_id, self._storage.get_wallets)

    async def process_reply(
        self,
        user_id: UUID,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReplyResult:
        """
        Apply every marker in an assistant reply and clean it for display.

        Returns:
            ChatReplyResult with one outcome per parsed directive (in
            extraction order), the dropped markers, and the display text.

        Raises:
            BackendUnavailableError: storage could not be reached at all
        """
        correlation_id = correlation_id or create_correlation_id()

        scan = scan_markers(text, self._settings.default_transfer_description)

        if self._audit_logger:
            await self._audit_logger.log_reply_received(
                user_id=user_id,
                marker_count=scan.marker_count,
                reply_length=len(text),
                correlation_id=correlation_id,
            )
            for omission in scan.omissions:
                await self._audit_logger.log_marker_rejected(
                    user_id=user_id,
                    keyword=omission.keyword,
                    marker_text=omission.marker_text,
                    reason=omission.reason,
                    correlation_id=correlation_id,
                )

        try:
            outcomes = await self._reconciler.reconcile_all(
                scan.directives,
                user_id,
                load_wallets=self._load_wallets,
                on_commit=self._cache.invalidate,
                correlation_id=correlation_id,
            )
        except BackendUnavailableError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="ledger_storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        result = ChatReplyResult(
            correlation_id=correlation_id,
            display_text=sanitize(text),
            outcomes=outcomes,
            omissions=scan.omissions,
        )

        logger.info(
            "reply_processed",
            user_id=str(user_id),
            correlation_id=str(correlation_id),
            committed=result.committed_count,
            failed=result.failed_count,
            dropped=len(result.omissions),
        )
        return result

    async def handle_message(
        self,
        user_id: UUID,
        history: Sequence[ChatMessage],
    ) -> ChatReplyResult:
        """
        Ask the assistant for a reply to the conversation, then process it.

        Raises:
            AssistantError: no assistant configured, or the call failed
            BackendUnavailableError: storage could not be reached at all
        """
        if self._assistant is None:
            raise AssistantError("No assistant configured")

        correlation_id = create_correlation_id()
        wallets = await self._load_wallets(user_id)

        try:
            text = await self._assistant.reply(history, wallets)
        except AssistantError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        return await self.process_reply(user_id, text, correlation_id)


def create_app_components(
    use_storage: bool = True,
    use_assistant: bool = True,
) -> tuple[ChatReplyFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to run fully in memory.
        use_assistant: Whether to set up the Gemini assistant.

    Returns:
        (chat_reply_flow, sheets_client)
    """
    settings = get_settings()
    ledger_settings = settings.ledger

    logging.basicConfig(level=settings.app.log_level, format="%(message)s")

    sheets_client = None
    storage: LedgerStorageInterface = InMemoryLedgerStorage()
    audit_storage: Optional[AuditStorageInterface] = None

    if use_storage and ledger_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except (BackendUnavailableError, SettingsError) as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    audit_logger = AuditLogger(audit_storage)

    assistant = None
    if use_assistant:
        try:
            assistant = AssistantAgent()
        except SettingsError as e:
            logger.warning("assistant_not_configured", error=str(e))

    flow = ChatReplyFlow(
        storage=storage,
        cache=UserWalletCache(ledger_settings.wallet_cache_ttl_seconds),
        audit_logger=audit_logger,
        assistant=assistant,
        settings=ledger_settings,
    )

    return flow, sheets_client
