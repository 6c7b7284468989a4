"""
FastAPI dependencies and error translation.
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, Request, status

from okrdash.errors import (
    DocumentStoreError,
    JiraError,
    JiraNotConfiguredError,
    JiraNotFoundError,
    NotAuthenticatedError,
    SettingsConflictError,
)
from okrdash.services.registry import Services


def get_services(request: Request) -> Services:
    """Service graph built at startup (see main.lifespan)."""
    return request.app.state.services


@contextmanager
def http_errors() -> Iterator[None]:
    """Translate domain exceptions raised inside the block into HTTPExceptions."""
    try:
        yield
    except NotAuthenticatedError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e
    except SettingsConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except DocumentStoreError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except JiraNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_412_PRECONDITION_FAILED, detail=str(e)) from e
    except JiraNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except JiraError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
