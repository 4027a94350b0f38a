"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Mutation request is missing a required field or a value is out of domain"""

    pass


class NotFoundError(DomainException):
    """Referenced business, transaction or counterparty does not exist"""

    pass


class ForbiddenError(DomainException):
    """Caller does not own the referenced transaction"""

    pass


class ComputationFallbackError(DomainException):
    """Score could not be recomputed; last persisted score should be used"""

    pass
