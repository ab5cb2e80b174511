# File: src/parkline/application/parking_service.py
"""
Parking Management Application Service

Use-case layer on top of the allocation engine.

Responsibilities:
1. Translate request DTOs into engine calls
2. Turn domain exceptions into result DTOs (success=False, error_code, message)
3. Publish the engine's domain events on the event bus after each call
4. Provide read models (snapshot, statistics, layout) for the presentation layer

No domain error escapes this service: the engine state stays valid after
every failure and the caller only ever sees a DTO.
"""

from typing import List, Optional
import logging

from ..domain.billing import BillingPolicy
from ..domain.engine import AllocationEngine
from ..domain.exceptions import ParkingError
from ..domain.models import Assigned, VehicleType
from ..infrastructure.config import ParkingSettings
from ..infrastructure.messaging import EventBus, EventMessage, LoggingEventHandler
from .dtos import (
    CancelWaitRequestDTO, CategoryStatsDTO, EntryStatusDTO, ExitRequestDTO,
    InitializeLotRequestDTO, LotSnapshotDTO, LotStatisticsDTO, MoneyDTO,
    OperationResultDTO, ParkingAllocationDTO, ParkingExitDTO, ParkingRequestDTO,
    RateUpdateRequestDTO, SlotLayoutRowDTO
)


VALIDATION_ERROR = "VALIDATION_ERROR"


class ParkingService:
    """
    Main application service for the parking lot

    Use cases:
    1. Lot initialization and rate management
    2. Vehicle entry (with waitlisting) and exit (with billing and promotion)
    3. Waitlist cancellation
    4. Availability, statistics and layout reports
    """

    def __init__(self, engine: AllocationEngine, event_bus: Optional[EventBus] = None):
        self.engine = engine
        self.event_bus = event_bus or EventBus()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _publish_events(self) -> None:
        for event in self.engine.clear_events():
            self.event_bus.publish(
                EventMessage.from_domain_event(event, self.engine.id, self.engine.version)
            )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def initialize(self, request: InitializeLotRequestDTO) -> OperationResultDTO:
        """Lay out a fresh lot; all vehicles, waiters and totals are discarded"""
        try:
            self.engine.initialize(request.to_counts())
        except ParkingError as e:
            self.logger.warning(f"Initialization rejected: {e.message}")
            return OperationResultDTO(success=False, error_code=e.code, message=e.message)
        finally:
            self._publish_events()

        total = request.cars + request.bikes + request.trucks
        return OperationResultDTO(
            success=True,
            message=(
                f"Parking initialized: Total slots = {total} "
                f"(Cars: {request.cars}, Bikes: {request.bikes}, Trucks: {request.trucks})"
            ),
            details={"total_slots": total, **request.to_dict()},
        )

    def set_rate(self, request: RateUpdateRequestDTO) -> OperationResultDTO:
        vehicle_type = VehicleType(request.vehicle_type)
        try:
            money = self.engine.set_rate(vehicle_type, request.rate)
        except ParkingError as e:
            self.logger.warning(f"Rate change rejected: {e.message}")
            return OperationResultDTO(success=False, error_code=e.code, message=e.message)
        finally:
            self._publish_events()

        return OperationResultDTO(
            success=True,
            message=f"Rate for {vehicle_type} set to {money.format()} per hour",
            details={"vehicle_type": vehicle_type.value, "rate": MoneyDTO.from_money(money).to_dict()},
        )

    def park_vehicle(self, request: ParkingRequestDTO) -> ParkingAllocationDTO:
        """
        Use Case: Vehicle Entry
        Assigns the lowest free slot of the vehicle's type or puts the
        vehicle on that type's waitlist.
        """
        vehicle_type = VehicleType(request.vehicle_type)
        self.logger.info(f"Processing entry for {request.external_id} ({vehicle_type})")

        try:
            outcome = self.engine.enter(request.external_id, vehicle_type)
        except ParkingError as e:
            self.logger.warning(f"Entry rejected for {request.external_id}: {e.message}")
            return ParkingAllocationDTO(
                success=False,
                external_id=request.external_id,
                vehicle_type=vehicle_type.value,
                status=EntryStatusDTO.REJECTED,
                error_code=e.code,
                message=e.message,
            )
        except ValueError as e:
            return ParkingAllocationDTO(success=False, error_code=VALIDATION_ERROR, message=str(e))
        finally:
            self._publish_events()

        if isinstance(outcome, Assigned):
            return ParkingAllocationDTO(
                success=True,
                external_id=outcome.external_id,
                vehicle_type=vehicle_type.value,
                status=EntryStatusDTO.ASSIGNED,
                ticket_id=outcome.ticket_id,
                slot_index=outcome.slot_index,
                slot_number=outcome.slot_index + 1,
                message=f"Ticket {outcome.ticket_id} issued for slot {outcome.slot_index + 1}",
            )

        return ParkingAllocationDTO(
            success=True,
            external_id=outcome.external_id,
            vehicle_type=vehicle_type.value,
            status=EntryStatusDTO.WAITLISTED,
            waitlist_position=outcome.position,
            message=f"No free {vehicle_type} slots. Added to waitlist position {outcome.position}",
        )

    def exit_vehicle(self, request: ExitRequestDTO) -> ParkingExitDTO:
        """
        Use Case: Vehicle Exit
        Bills the stay, frees the slot and hands it to the next waiter of
        the same type, if any.
        """
        self.logger.info(f"Processing exit for {request.external_id} after {request.duration_minutes} min")

        try:
            outcome = self.engine.exit(request.external_id, request.duration_minutes)
        except ParkingError as e:
            self.logger.warning(f"Exit rejected for {request.external_id}: {e.message}")
            return ParkingExitDTO(
                success=False, external_id=request.external_id,
                error_code=e.code, message=e.message
            )
        except ValueError as e:
            return ParkingExitDTO(success=False, error_code=VALIDATION_ERROR, message=str(e))
        finally:
            self._publish_events()

        return ParkingExitDTO.from_outcome(outcome)

    def cancel_wait(self, request: CancelWaitRequestDTO) -> OperationResultDTO:
        try:
            entry = self.engine.cancel_wait(request.external_id)
        except ParkingError as e:
            return OperationResultDTO(success=False, error_code=e.code, message=e.message)
        finally:
            self._publish_events()

        return OperationResultDTO(
            success=True,
            message=f"Vehicle '{entry.external_id}' removed from the {entry.vehicle_type} waitlist",
            details={"external_id": entry.external_id, "vehicle_type": entry.vehicle_type.value},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_snapshot(self) -> LotSnapshotDTO:
        return LotSnapshotDTO.from_snapshot(self.engine.snapshot())

    def get_statistics(self) -> LotStatisticsDTO:
        snapshot = self.engine.snapshot()
        return LotStatisticsDTO(
            total_slots=snapshot.total_slots,
            occupied_total=snapshot.occupied_total,
            occupancy_percent=snapshot.occupancy_percent,
            served_total=snapshot.served_total,
            earnings_total=MoneyDTO.from_money(snapshot.earnings_total),
            rates={vt.value: MoneyDTO.from_money(m) for vt, m in snapshot.rates.items()},
            by_category=[CategoryStatsDTO.from_stats(s) for s in snapshot.by_category],
        )

    def get_layout(self) -> List[SlotLayoutRowDTO]:
        return [SlotLayoutRowDTO.from_view(view) for view in self.engine.stats.layout()]


# ============================================================================
# SERVICE FACTORY
# ============================================================================

class ParkingServiceFactory:
    """Factory for creating parking service instances"""

    @staticmethod
    def create_from_settings(
        settings: ParkingSettings,
        event_bus: Optional[EventBus] = None
    ) -> ParkingService:
        """Build billing, engine and service from settings and lay out the lot"""
        billing = BillingPolicy(rates=settings.rates, currency=settings.currency)
        engine = AllocationEngine(
            billing=billing,
            allow_duplicate_waitlist=settings.allow_duplicate_waitlist
        )
        bus = event_bus or EventBus()
        bus.subscribe_all(LoggingEventHandler())

        service = ParkingService(engine, bus)
        service.initialize(InitializeLotRequestDTO(
            cars=settings.slots.get(VehicleType.CAR, 0),
            bikes=settings.slots.get(VehicleType.BIKE, 0),
            trucks=settings.slots.get(VehicleType.TRUCK, 0),
        ))
        return service

    @staticmethod
    def create_default_service() -> ParkingService:
        """Empty lot with default rates"""
        return ParkingServiceFactory.create_from_settings(ParkingSettings())
