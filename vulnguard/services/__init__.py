"""Service layer — business logic orchestration."""


class ServiceError(Exception):
    """Base service exception."""


class NotFoundError(ServiceError):
    """Resource not found (-> HTTP 404)."""


class ValidationError(ServiceError):
    """Input validation or state transition error (-> HTTP 422)."""


class UpstreamError(ServiceError):
    """An external collaborator (AI model, webhook) failed (-> HTTP 502)."""


class DispatchFailure(UpstreamError):
    """A remediation or notification delivery failed.

    Raised only inside remediation tasks; the dispatcher logs and swallows it.
    """
