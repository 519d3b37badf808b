"""
FastAPI dependency injection.

Dependencies provide instances of services, sources, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is centralized

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.metrics.engine import MetricsEngine, RecordScope
from ..core.metrics.models import Dataset
from ..core.metrics.normalizer import normalize_dataset
from ..infrastructure.sources.client import (
    DataSourceError,
    RecordSource,
    SourceConfig,
    create_record_source,
)

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Global mock instance (shared across requests for testing)
_mock_record_source = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8] if api_key else ""}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


async def get_caller_email(
    x_user_email: Annotated[Optional[str], Header()] = None,
) -> str:
    """Identity of the athlete or admin making the request."""
    email = (x_user_email or "").strip().lower()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Provide X-User-Email header.",
        )
    return email


# ---------------------------------------------------------------------------
# Data Dependencies
# ---------------------------------------------------------------------------

def get_record_source(
    settings: Annotated[Settings, Depends(get_settings)],
) -> RecordSource:
    """
    Provide the record source for the configured exports.

    In mock mode, we reuse the same in-memory source across requests.
    """
    global _mock_record_source

    if settings.data_source_mock_mode:
        if _mock_record_source is None:
            _mock_record_source = create_record_source(mock_mode=True)
            logger.info("Created shared mock record source")
        return _mock_record_source

    config = SourceConfig(
        data_dir=settings.data_dir,
        users_file=settings.users_file,
        training_files=settings.training_files_list,
        assessments_file=settings.assessments_file,
        coaches_file=settings.coaches_file,
        plans_file=settings.plans_file,
    )
    return create_record_source(config=config)


def get_dataset(
    source: Annotated[RecordSource, Depends(get_record_source)],
) -> Dataset:
    """
    Load and normalize a fresh batch for this request.

    The whole pipeline reruns on every request, so edits to the exports
    show up without a restart. A source that can't load at all is the one
    failure surfaced to the client, as 503.
    """
    try:
        raw = source.load()
    except DataSourceError as e:
        logger.error("Record source unavailable", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Training data unavailable: {e}",
        )
    return normalize_dataset(raw)


def get_metrics_engine() -> MetricsEngine:
    """The engine is stateless, so a new instance per request is fine."""
    return MetricsEngine()


def get_record_scope(
    settings: Annotated[Settings, Depends(get_settings)],
    dataset: Annotated[Dataset, Depends(get_dataset)],
    caller: Annotated[str, Depends(get_caller_email)],
) -> RecordScope:
    """
    Decide which athletes the caller may see.

    Admins see everyone. Any other caller must be a known athlete and
    only sees their own records.
    """
    if caller in settings.admin_emails_list:
        return RecordScope.everyone()

    if caller not in dataset.index_users():
        logger.info("Unknown caller email", extra={"email": caller})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email not found.",
        )

    return RecordScope.only([caller])


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
CallerEmail = Annotated[str, Depends(get_caller_email)]
RecordSourceDep = Annotated[RecordSource, Depends(get_record_source)]
DatasetDep = Annotated[Dataset, Depends(get_dataset)]
MetricsEngineDep = Annotated[MetricsEngine, Depends(get_metrics_engine)]
RecordScopeDep = Annotated[RecordScope, Depends(get_record_scope)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
