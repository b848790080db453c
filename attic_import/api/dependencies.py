"""FastAPI dependencies for the API layer."""

from fastapi import HTTPException, Request, status

from attic_import.services.import_service import ImportService


async def get_import_service(request: Request) -> ImportService:
    """Get the import service created at application startup.

    Raises:
        HTTPException: 503 if the application has not finished starting
    """
    service = getattr(request.app.state, "import_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Import service is not initialized",
        )
    return service
