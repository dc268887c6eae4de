"""Custom exceptions for plaza-py."""

from __future__ import annotations


class PlazaError(Exception):
    """Base exception class for all plaza-py errors."""


class SessionNotFoundError(PlazaError):
    """Raised when no open session exists for the requested ID.

    Attributes:
        session_id: The ID of the session that was not found.
    """

    def __init__(self, session_id: str) -> None:
        """Initialize the exception with the session ID.

        Args:
            session_id: The ID of the session that was not found.
        """
        self.session_id = session_id
        super().__init__(f"Session with ID {session_id} not found")


class InvalidMessageError(PlazaError):
    """Raised when a protocol payload does not have the expected structure.

    Attributes:
        event: Name of the protocol event the payload belonged to.
    """

    def __init__(self, event: str, message: str) -> None:
        """Initialize the exception.

        Args:
            event: Name of the protocol event.
            message: Description of what is wrong with the payload.
        """
        self.event = event
        super().__init__(f"Invalid {event} payload: {message}")


class InvalidMovementError(InvalidMessageError):
    """Raised when a ``playerMovement`` payload is structurally malformed."""

    def __init__(self, message: str) -> None:
        """Initialize the exception.

        Args:
            message: Description of what is wrong with the payload.
        """
        super().__init__("playerMovement", message)


class PluginNotInitializedError(PlazaError):
    """Raised when plugin state is accessed before ``on_app_init`` has run."""

    def __init__(self, attribute: str) -> None:
        """Initialize the exception.

        Args:
            attribute: Name of the plugin attribute that was accessed.
        """
        self.attribute = attribute
        super().__init__(f"Plugin not initialized, cannot access {attribute}. Call on_app_init first.")
