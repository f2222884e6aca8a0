"""Password-protected CSV log downloads."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

router = APIRouter(prefix="/download", tags=["downloads"])

logger = logging.getLogger(__name__)

security = HTTPBasic(realm="TrafficWatch Downloads", auto_error=False)

# Will be set by main.py
query = None
download_user: str = ""
download_pass: str = ""


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": 'Basic realm="TrafficWatch Downloads"'},
    )


def check_credentials(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    # An unset password disables downloads entirely
    if credentials is None or not download_pass:
        raise _unauthorized()
    user_ok = secrets.compare_digest(credentials.username.encode(), download_user.encode())
    pass_ok = secrets.compare_digest(credentials.password.encode(), download_pass.encode())
    if not (user_ok and pass_ok):
        logger.warning("Rejected download credentials for user %r", credentials.username)
        raise _unauthorized()
    return credentials.username


@router.get("/{route_id}")
async def download_log(route_id: str, _user: str = Depends(check_credentials)):
    """Full durable log for a route as a CSV attachment."""
    if query is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    if not query.has_route(route_id):
        raise HTTPException(status_code=404, detail="File not found")
    data = query.log_bytes(route_id)
    if data is None:
        raise HTTPException(status_code=404, detail="File not found")
    filename = query.log_filename(route_id)
    return Response(
        content=data,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
