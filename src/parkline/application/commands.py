# File: src/parkline/application/commands.py
"""
Command Pattern Implementation for the parking application

Each operator action (initialize the lot, vehicle entry, vehicle exit,
rate change, waitlist cancellation) is a command object that:
1. validates its raw input into a request DTO
2. executes against the ParkingService
3. is recorded, with its result, in the CommandProcessor history

Commands that fail validation are never executed.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple
from datetime import datetime
import logging
from dataclasses import dataclass, field
import uuid

from pydantic import BaseModel, ValidationError

from .dtos import (
    CancelWaitRequestDTO, ExitRequestDTO, InitializeLotRequestDTO,
    ParkingRequestDTO, RateUpdateRequestDTO, ResultDTO
)
from .parking_service import ParkingService


# ============================================================================
# COMMAND RESULT
# ============================================================================

@dataclass
class CommandResult:
    """Outcome of one processed command"""
    success: bool
    command_id: str
    command_type: str
    executed_at: datetime
    result: Optional[ResultDTO] = None
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> Optional[str]:
        if self.result is not None:
            return self.result.message
        return "; ".join(self.errors) or None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "command_id": self.command_id,
            "command_type": self.command_type,
            "executed_at": self.executed_at.isoformat(),
            "result": self.result.to_dict() if self.result else None,
            "errors": list(self.errors)
        }


# ============================================================================
# COMMAND INTERFACES AND BASE CLASSES
# ============================================================================

class Command(ABC):
    """
    Abstract base class for all commands

    A command represents an intent to change the system state.
    Commands are named in the imperative (e.g., ParkVehicleCommand).
    """

    request_type: type = BaseModel

    def __init__(self, command_id: Optional[str] = None, executed_by: Optional[str] = None, **raw: Any):
        self.command_id = command_id or str(uuid.uuid4())
        self.executed_by = executed_by or "operator"
        self.executed_at: Optional[datetime] = None
        self.raw = raw
        self.request: Optional[BaseModel] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate raw input into the command's request DTO

        Returns: (is_valid, error_messages)
        """
        try:
            self.request = self.request_type(**self.raw)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in e.errors()
            ]
            return False, errors
        return True, []

    @abstractmethod
    def execute(self, service: ParkingService) -> ResultDTO:
        """Execute the validated request against the service"""
        pass

    def get_description(self) -> str:
        return self.__class__.__name__.replace("Command", "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "executed_by": self.executed_by,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "input": dict(self.raw)
        }


# ============================================================================
# PARKING COMMANDS
# ============================================================================

class InitializeLotCommand(Command):
    """Command: lay out a fresh lot (cars, bikes, trucks)"""

    request_type = InitializeLotRequestDTO

    def execute(self, service: ParkingService) -> ResultDTO:
        return service.initialize(self.request)


class ParkVehicleCommand(Command):
    """Command: vehicle entry (external_id, vehicle_type)"""

    request_type = ParkingRequestDTO

    def execute(self, service: ParkingService) -> ResultDTO:
        return service.park_vehicle(self.request)


class ExitVehicleCommand(Command):
    """Command: vehicle exit (external_id, duration_minutes)"""

    request_type = ExitRequestDTO

    def execute(self, service: ParkingService) -> ResultDTO:
        return service.exit_vehicle(self.request)


class SetRateCommand(Command):
    """Command: change the hourly rate of a category (vehicle_type, rate)"""

    request_type = RateUpdateRequestDTO

    def execute(self, service: ParkingService) -> ResultDTO:
        return service.set_rate(self.request)


class CancelWaitCommand(Command):
    """Command: withdraw a waiting request (external_id)"""

    request_type = CancelWaitRequestDTO

    def execute(self, service: ParkingService) -> ResultDTO:
        return service.cancel_wait(self.request)


# ============================================================================
# COMMAND PROCESSOR
# ============================================================================

class CommandProcessor:
    """
    Processes commands and keeps an audit history
    - Validation before execution
    - Command logging
    - Bounded history of results
    """

    def __init__(self, service: ParkingService, max_history_size: int = 1000):
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)
        self.history: List[CommandResult] = []
        self.max_history_size = max_history_size

    def process(self, command: Command) -> CommandResult:
        """Validate and execute a command, recording the result"""
        self.logger.info(f"Processing command: {command.get_description()} ({command.command_id})")

        is_valid, errors = command.validate()
        if not is_valid:
            self.logger.warning(f"Command {command.get_description()} rejected: {errors}")
            result = CommandResult(
                success=False,
                command_id=command.command_id,
                command_type=command.__class__.__name__,
                executed_at=datetime.now(),
                errors=errors
            )
        else:
            dto = command.execute(self.service)
            command.executed_at = datetime.now()
            result = CommandResult(
                success=dto.success,
                command_id=command.command_id,
                command_type=command.__class__.__name__,
                executed_at=command.executed_at,
                result=dto,
                errors=[] if dto.success else [dto.message or dto.error_code or "failed"]
            )

        self._add_to_history(result)
        return result

    def process_batch(self, commands: List[Command]) -> List[CommandResult]:
        """Process multiple commands in order; a failure does not stop the batch"""
        return [self.process(command) for command in commands]

    def _add_to_history(self, result: CommandResult) -> None:
        self.history.append(result)
        if len(self.history) > self.max_history_size:
            del self.history[:len(self.history) - self.max_history_size]

    def get_history(self, limit: Optional[int] = None) -> List[CommandResult]:
        """Most recent results last"""
        if limit is None:
            return list(self.history)
        return self.history[-limit:] if limit > 0 else []
