"""One failure policy for every status-driven side effect.

``strict`` runs the cascade inside the caller's transaction, so a failure
rolls back the primary write as well. ``best_effort`` runs it inside a
SAVEPOINT; a failure is logged, only the cascade is undone and the primary
write is kept.
"""

from enum import Enum

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import config
from .errors import BackofficeError, CascadeError
from .loggers import get_logger

logger = get_logger(__name__)


class CascadePolicy(str, Enum):
    STRICT = "strict"
    BEST_EFFORT = "best_effort"


def current_policy():
    try:
        return CascadePolicy(config.settings.cascade_policy)
    except ValueError:
        logger.warning("Unknown CASCADE_POLICY %r, using strict", config.settings.cascade_policy)
        return CascadePolicy.STRICT


def run_cascade(db, name, func, *args, **kwargs):
    """Run ``func`` as cascade ``name`` under the configured policy.

    Returns whatever ``func`` returns, or None when a best-effort cascade
    failed.
    """
    policy = current_policy()
    if policy is CascadePolicy.STRICT:
        try:
            return func(*args, **kwargs)
        except (BackofficeError, IntegrityError):
            # Constraint violations keep their 409 rendering.
            raise
        except SQLAlchemyError as exc:
            logger.exception("[%s] cascade failed", name)
            raise CascadeError(f"{name} failed") from exc

    try:
        with db.begin_nested():
            return func(*args, **kwargs)
    except Exception:
        logger.exception("[%s] cascade failed; keeping the primary change", name)
        return None
