"""MarkOwnerResponded Use Case

The listing owner confirms they answered the tenant, which closes the
refund window for that unlock.
"""

import logging
from libs.result import Result, Return, Error
from src.app.repositories.listing_repository import ListingRepository
from src.app.repositories.unlock_repository import UnlockRepository
from src.app.services.clock import Clock
from src.app.services.unit_of_work import UnitOfWork
from src.domain.unlock_record import OwnerResponseStatus, ResponseChannel, UnlockStatus
from .dtos import MarkRespondedCommandDTO, MarkRespondedResponseDTO

logger = logging.getLogger(__name__)


class MarkOwnerResponded:
    """
    Use Case: Owner marks an unlock as responded

    Business Rules:
    1. Only the owner of the unlocked listing may respond
    2. Only pending/active unlocks can move to responded; a refunded or
       already responded unlock is rejected
    3. The transition is a guarded update, so a concurrent refund sweep and
       owner response cannot both win
    """

    def __init__(
        self,
        uow: UnitOfWork,
        unlock_repo: UnlockRepository,
        listing_repo: ListingRepository,
        clock: Clock,
    ):
        self.uow = uow
        self.unlock_repo = unlock_repo
        self.listing_repo = listing_repo
        self.clock = clock

    async def execute(self, command: MarkRespondedCommandDTO) -> Result[MarkRespondedResponseDTO]:
        try:
            channel = ResponseChannel(command.channel)
        except ValueError:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"channel must be one of {', '.join(c.value for c in ResponseChannel)}",
                )
            )

        try:
            record = await self.unlock_repo.get_by_id(command.unlock_id, for_update=True)
            if not record:
                await self.uow.rollback()
                return Return.err(
                    Error(code="NOT_FOUND", message=f"Unlock {command.unlock_id} not found")
                )

            listing = await self.listing_repo.get_by_id(record.listing_id)
            if not listing or listing.owner_id != command.owner_id:
                await self.uow.rollback()
                return Return.err(
                    Error(code="FORBIDDEN", message="Only the listing owner can respond to this unlock")
                )

            if (
                record.owner_response_status != OwnerResponseStatus.PENDING
                or record.unlock_status != UnlockStatus.ACTIVE
            ):
                status = record.owner_response_status.value
                await self.uow.rollback()
                return Return.err(self._already_responded(command.unlock_id, status))

            now = self.clock.now()
            if not await self.unlock_repo.mark_responded(command.unlock_id, now, channel):
                await self.uow.rollback()
                return Return.err(self._already_responded(command.unlock_id, "changed concurrently"))

            await self.unlock_repo.add_event(
                command.unlock_id,
                actor_role="owner",
                event_type="owner_responded",
                metadata={"channel": channel.value},
            )
            await self.uow.commit()

            logger.info(f"Owner {command.owner_id} responded to unlock {command.unlock_id} via {channel.value}")

            return Return.ok(
                MarkRespondedResponseDTO(
                    unlock_id=command.unlock_id,
                    owner_response_status=OwnerResponseStatus.RESPONDED.value,
                    owner_responded_at=now,
                    channel=channel.value,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="MARK_RESPONDED_FAILED",
                    message="Failed to record owner response",
                    reason=str(e),
                )
            )

    def _already_responded(self, unlock_id: str, status: str) -> Error:
        return Error(
            code="ALREADY_RESPONDED",
            message=f"Unlock {unlock_id} is no longer awaiting a response",
            reason=f"owner_response_status={status}",
        )
