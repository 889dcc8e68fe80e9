"""Error taxonomy shared by the pipeline, verification and refund services."""


class TicketingError(Exception):
    """Base class for all domain failures."""

    code = "TICKETING_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(TicketingError):
    """Malformed or missing required argument. Never retried."""

    code = "INVALID_INPUT"


class NoEventSelectedError(InvalidInputError):
    """Verification attempted without an active event context."""

    code = "NO_EVENT_SELECTED"

    def __init__(self, message: str = "Please select an event first"):
        super().__init__(message)


class NotFoundError(TicketingError):
    """Referenced on-chain entity does not exist."""

    code = "NOT_FOUND"


class EventNotFoundError(NotFoundError):
    code = "EVENT_NOT_FOUND"

    def __init__(self, event_id: str):
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class TokenNotFoundError(NotFoundError):
    code = "TOKEN_NOT_FOUND"

    def __init__(self, token_id: str):
        super().__init__(
            f"NFT token ID {token_id} not found. Please check the token ID."
        )
        self.token_id = token_id


class MismatchError(TicketingError):
    """Two sources disagree about the identity of an entity."""

    code = "MISMATCH"


class WrongEventError(MismatchError):
    """Ticket NFT belongs to a different event than the one being verified."""

    code = "WRONG_EVENT"

    def __init__(self, token_id: str, nft_event_id: str, selected_event_id: str):
        super().__init__(
            f"This NFT (Token #{token_id}) belongs to event ID {nft_event_id}, "
            f"not the selected event (ID {selected_event_id})"
        )
        self.token_id = token_id
        self.nft_event_id = nft_event_id
        self.selected_event_id = selected_event_id


class GatewayError(TicketingError):
    """Transient chain or RPC failure. Callers may retry manually."""

    code = "GATEWAY_ERROR"


class AlreadyRunningError(TicketingError):
    """A pipeline run is already in progress on this orchestrator."""

    code = "ALREADY_RUNNING"

    def __init__(self, run_id: str):
        super().__init__(f"Pipeline {run_id} is already running")
        self.run_id = run_id


class StorageError(TicketingError):
    """Content store upload failed."""

    code = "STORAGE_ERROR"


class VerificationSupersededError(TicketingError):
    """A newer select/verify call replaced this verification attempt."""

    code = "SUPERSEDED"
