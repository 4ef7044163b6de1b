"""
Shared module for common utilities used by the REST API and the CLI.

STRUCTURE:
- shared.security: Authentication, authorization, rate limiting
  - auth.py: JWT verification, current_user_context, require_roles
  - rate_limit.py: slowapi limiter for preference creation and public lookups

- shared.infrastructure: Database and request tracing
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging, webhook audit trail
  - constants.py: Roles, PaymentStatus, limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py / payment_schemas.py: Pydantic schemas (camelCase wire format)
  - health.py: Health probes with timeouts

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, current_user_context
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, PaymentStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""

# No re-exports: import from the canonical paths documented above.
