"""
Core Application - Infrastructure & Base Classes

Shared building blocks used by the domain apps. Nothing in here knows
about messages, preferences, or email delivery.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Managers (import from core.managers):
    - SoftDeleteManager: Filter deleted records by default
    - SoftDeleteQuerySet: QuerySet with soft delete operations

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - ExternalServiceError: Failures talking to something outside the process

Views (import from core.views):
    - health_check: Liveness/readiness endpoint

Note:
    - Business logic should NOT go here. Extend core classes in your domain apps.
"""
