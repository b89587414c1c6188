from .bus import MessageBus
from lifeboard.common.messaging import bus as messaging_bus
from .events import (
    OperationStarted,
    OperationFinished,
    BoardCreated,
    GenerationsAdvanced,
    BoardStabilized,
    ConvergenceFailed,
)


class HumanReadableLogSubscriber:
    """
    Listens to runtime events and translates them into semantic messages
    on the messaging bus. It acts as a bridge between the event domain
    and the user-facing message domain.
    """

    def __init__(self, event_bus: MessageBus):
        event_bus.subscribe(OperationStarted, self.on_operation_started)
        event_bus.subscribe(OperationFinished, self.on_operation_finished)
        event_bus.subscribe(BoardCreated, self.on_board_created)
        event_bus.subscribe(GenerationsAdvanced, self.on_generations_advanced)
        event_bus.subscribe(BoardStabilized, self.on_board_stabilized)
        event_bus.subscribe(ConvergenceFailed, self.on_convergence_failed)

    def on_operation_started(self, event: OperationStarted):
        messaging_bus.debug(
            "operation.started", operation=event.operation, board_id=event.board_id
        )

    def on_operation_finished(self, event: OperationFinished):
        if event.status == "Failed":
            messaging_bus.error(
                "operation.finished_failure",
                operation=event.operation,
                board_id=event.board_id,
                duration=event.duration,
                error=event.error,
            )
        elif event.status == "Skipped":
            messaging_bus.info(
                "operation.skipped_final",
                operation=event.operation,
                board_id=event.board_id,
                generation=event.generation,
            )
        else:
            messaging_bus.debug(
                "operation.finished_success",
                operation=event.operation,
                board_id=event.board_id,
                duration=event.duration,
            )

    def on_board_created(self, event: BoardCreated):
        messaging_bus.info(
            "board.created",
            board_id=event.board_id,
            width=event.width,
            height=event.height,
            population=event.population,
        )

    def on_generations_advanced(self, event: GenerationsAdvanced):
        messaging_bus.info(
            "board.advanced",
            board_id=event.board_id,
            from_generation=event.from_generation,
            to_generation=event.to_generation,
            population=event.population,
        )

    def on_board_stabilized(self, event: BoardStabilized):
        messaging_bus.info(
            "board.stabilized",
            board_id=event.board_id,
            generation=event.generation,
            steps=event.steps,
        )

    def on_convergence_failed(self, event: ConvergenceFailed):
        messaging_bus.warning(
            "board.convergence_failed",
            board_id=event.board_id,
            max_generations=event.max_generations,
        )
