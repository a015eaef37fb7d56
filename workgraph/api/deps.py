from fastapi import HTTPException, Request

from workgraph.fetching.service import WorkspaceService


def get_service(request: Request) -> WorkspaceService:
    """WorkspaceService built at startup; tests override this dependency."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Server is still initializing. Please try again in a moment.")
    return service
