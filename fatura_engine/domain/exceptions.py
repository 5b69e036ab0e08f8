"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RecordNotFoundError(DomainException):
    """Card or expense does not exist for the requesting user/profile"""

    pass


class InvalidCardConfigurationError(DomainException):
    """Card is missing a closing/due day or carries one outside 1..31"""

    pass


class StatementLoadError(DomainException):
    """A record stream or query failed while loading a statement"""

    pass


class InvalidAnticipationError(DomainException):
    """Anticipation request does not describe future siblings of the installment"""

    pass


class AnticipationCommitError(DomainException):
    """Anticipation batch could not be committed; nothing was changed"""

    pass
