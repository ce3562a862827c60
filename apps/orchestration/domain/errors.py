from __future__ import annotations


class OrchestrationError(Exception):
    pass


class ConfigurationError(OrchestrationError):
    pass


class ResolutionError(OrchestrationError, LookupError):
    def __init__(self, message: str, *, entity: str | None = None, identifier=None):
        super().__init__(message)
        self.entity = entity
        self.identifier = identifier


class IncompatibilityError(OrchestrationError):
    def __init__(self, message: str, *, provider=None, merchant=None):
        super().__init__(message)
        self.provider = provider
        self.merchant = merchant


class NoSuchMethodError(OrchestrationError, AttributeError):
    pass
