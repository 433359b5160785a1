"""UnlockContact Use Case

Spends one credit to reveal a listing owner's contact, exactly once per
(tenant, idempotency key), and opens the owner response window.
"""

import logging
from datetime import timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.repositories.listing_repository import ListingRepository
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.app.repositories.unlock_repository import UnlockRepository
from src.app.services.clock import Clock
from src.app.services.unit_of_work import UnitOfWork
from src.domain.exceptions import InsufficientBalance
from src.domain.ledger_entry import LedgerEntryKind
from src.domain.listing import Listing
from src.domain.unlock_record import UnlockRecord
from .dtos import OwnerContactDTO, UnlockCommandDTO, UnlockResponseDTO

logger = logging.getLogger(__name__)

UNLOCK_COST = 1


class UnlockContact:
    """
    Use Case: Unlock a listing owner's contact

    Business Rules:
    1. Idempotency: the same (tenant, key) returns the same unlock, debited once
    2. A key is bound to one listing; reuse for another listing is a conflict
    3. Only active listings can be unlocked
    4. The debit, the unlock record, its audit event and the CRM notification
       are committed together or not at all

    Flow:
    1. Replay if an unlock exists for (tenant, key)
    2. Check listing availability
    3. Debit one credit (account row locked until commit)
    4. Insert-or-fetch the unlock record, deadline = now + response window
    5. Write audit event and enqueue outbound event
    6. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger_repo: LedgerRepository,
        unlock_repo: UnlockRepository,
        listing_repo: ListingRepository,
        outbound_repo: OutboundEventRepository,
        clock: Clock,
        response_window_hours: int = 12,
    ):
        self.uow = uow
        self.ledger_repo = ledger_repo
        self.unlock_repo = unlock_repo
        self.listing_repo = listing_repo
        self.outbound_repo = outbound_repo
        self.clock = clock
        self.response_window = timedelta(hours=response_window_hours)

    async def execute(self, command: UnlockCommandDTO) -> Result[UnlockResponseDTO]:
        """
        Execute contact unlock

        Args:
            command: UnlockCommandDTO with tenant_id, listing_id, idempotency_key

        Returns:
            Result[UnlockResponseDTO]: Unlock projection or error

        Errors:
            DUPLICATE_IDEMPOTENCY_KEY: Key already used for another listing
            LISTING_UNAVAILABLE: Listing missing or not active
            INSUFFICIENT_CREDITS: Balance is zero
        """
        try:
            # Step 1: Replay
            existing = await self.unlock_repo.get_by_tenant_key(
                command.tenant_id, command.idempotency_key
            )
            if existing:
                if existing.listing_id != command.listing_id:
                    await self.uow.rollback()
                    return Return.err(self._duplicate_key_error(command))

                listing = await self.listing_repo.get_by_id(existing.listing_id)
                balance = await self.ledger_repo.get_balance(command.tenant_id)
                response = self._to_response_dto(existing, listing, balance)
                await self.uow.commit()
                return Return.ok(response)

            # Step 2: Listing availability
            listing = await self.listing_repo.get_by_id(command.listing_id)
            if not listing or not listing.is_unlockable():
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="LISTING_UNAVAILABLE",
                        message=f"Listing {command.listing_id} is not available for unlock",
                    )
                )

            # Step 3: Debit
            now = self.clock.now()
            debit = await self.ledger_repo.apply_entry(
                account_id=command.tenant_id,
                delta=-UNLOCK_COST,
                kind=LedgerEntryKind.DEBIT_UNLOCK,
                reference=command.listing_id,
                idempotency_key=f"unlock:{command.idempotency_key}",
            )
            if not debit.inserted and debit.record.reference != command.listing_id:
                await self.uow.rollback()
                return Return.err(self._duplicate_key_error(command))

            # Step 4: Unlock record
            created = await self.unlock_repo.create(
                UnlockRecord(
                    tenant_id=command.tenant_id,
                    listing_id=command.listing_id,
                    idempotency_key=command.idempotency_key,
                    ledger_entry_id=debit.record.id,
                    response_deadline_at=now + self.response_window,
                    created_at=now,
                    updated_at=now,
                )
            )
            unlock = created.record

            # Step 5: Audit trail and CRM notification
            if created.inserted:
                await self.unlock_repo.add_event(
                    unlock.id,
                    actor_role="tenant",
                    event_type="unlock_created",
                    metadata={"listing_id": unlock.listing_id, "ledger_entry_id": debit.record.id},
                )
                await self.outbound_repo.enqueue(
                    event_type="crm.contact_unlock.created",
                    aggregate_type="contact_unlock",
                    aggregate_id=unlock.id,
                    dedupe_key=f"contact_unlock_created:{unlock.id}",
                    payload={
                        "unlock_id": unlock.id,
                        "tenant_id": unlock.tenant_id,
                        "listing_id": unlock.listing_id,
                        "owner_id": listing.owner_id,
                        "response_deadline_at": unlock.response_deadline_at.isoformat(),
                    },
                    now=now,
                )

            balance = await self.ledger_repo.get_balance(command.tenant_id)
            response = self._to_response_dto(unlock, listing, balance)

            # Step 6: Commit
            await self.uow.commit()

            if created.inserted:
                logger.info(
                    f"Tenant {command.tenant_id} unlocked listing {command.listing_id} "
                    f"(unlock={response.unlock_id}, credits_remaining={balance})"
                )
            return Return.ok(response)

        except InsufficientBalance as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="INSUFFICIENT_CREDITS",
                    message="Not enough credits to unlock this contact",
                    reason=str(e),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Unlock failed for tenant {command.tenant_id}: {e}")
            return Return.err(
                Error(
                    code="UNLOCK_FAILED",
                    message="Failed to unlock contact",
                    reason=str(e),
                )
            )

    def _duplicate_key_error(self, command: UnlockCommandDTO) -> Error:
        return Error(
            code="DUPLICATE_IDEMPOTENCY_KEY",
            message="Idempotency-Key was already used for a different listing",
            reason=f"tenant={command.tenant_id}, key={command.idempotency_key}",
        )

    def _to_response_dto(
        self, unlock: UnlockRecord, listing: Optional[Listing], balance: int
    ) -> UnlockResponseDTO:
        contact = OwnerContactDTO()
        if listing:
            contact = OwnerContactDTO(
                phone_e164=listing.contact_phone_e164,
                whatsapp_available=listing.whatsapp_available,
            )
        return UnlockResponseDTO(
            unlock_id=unlock.id,
            listing_id=unlock.listing_id,
            owner_contact=contact,
            credits_remaining=balance,
            response_deadline_at=unlock.response_deadline_at,
        )
