"""EnqueueOutboundEvent Use Case

Standalone entry point for producers outside this service. Producers inside
a transaction call OutboundEventRepository.enqueue directly so the event
commits with the change it describes.
"""

from libs.result import Result, Return, Error
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.app.services.clock import Clock
from src.app.services.unit_of_work import UnitOfWork
from .dtos import EnqueueOutboundEventCommandDTO, EnqueueOutboundEventResponseDTO


class EnqueueOutboundEvent:
    def __init__(self, uow: UnitOfWork, outbound_repo: OutboundEventRepository, clock: Clock):
        self.uow = uow
        self.outbound_repo = outbound_repo
        self.clock = clock

    async def execute(
        self, command: EnqueueOutboundEventCommandDTO
    ) -> Result[EnqueueOutboundEventResponseDTO]:
        if not command.event_type.strip() or not command.dedupe_key.strip():
            return Return.err(
                Error(code="VALIDATION_ERROR", message="event_type and dedupe_key are required")
            )

        try:
            result = await self.outbound_repo.enqueue(
                event_type=command.event_type,
                aggregate_type=command.aggregate_type,
                aggregate_id=command.aggregate_id,
                dedupe_key=command.dedupe_key,
                payload=command.payload,
                now=self.clock.now(),
            )
            response = EnqueueOutboundEventResponseDTO(
                event_id=result.record.id,
                enqueued=result.inserted,
            )
            await self.uow.commit()
            return Return.ok(response)
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="ENQUEUE_FAILED",
                    message="Failed to enqueue outbound event",
                    reason=str(e),
                )
            )
