"""Error taxonomy for the scheduling assistant.

Adapters translate library exceptions into these types so the dialogue
controller can turn every failure into a reply without knowing which
provider is behind each collaborator.
"""


class AgendaError(Exception):
    """Base class for all assistant errors."""


class ExtractionError(AgendaError):
    """The extraction provider failed or timed out."""


class ExtractionFormatError(ExtractionError):
    """The extractor replied, but not with the expected structured shape."""


class DirectoryError(AgendaError):
    """A contact lookup or upsert failed."""


class DuplicateContactError(DirectoryError):
    """An upsert hit the unique email constraint of another contact."""

    def __init__(self, email: str, existing_name: str = "") -> None:
        self.email = email
        self.existing_name = existing_name
        owner = f" (contact '{existing_name}')" if existing_name else ""
        super().__init__(f"Email {email} is already registered{owner}")


class DispatchError(AgendaError):
    """The calendar provider rejected or failed to create the event."""
