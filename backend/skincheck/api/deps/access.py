from fastapi import Depends, Header, HTTPException, status

from skincheck.config import load_settings


def check_access_key(provided: str | None) -> None:
    settings = load_settings()
    if not settings.app_access_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Access key is not configured. Contact the administrator.",
        )
    if provided is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing access key",
        )
    if provided.strip() != settings.app_access_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid access key",
        )


def require_access_key(x_access_key: str | None = Header(None)) -> None:
    check_access_key(x_access_key)


AccessGuard = Depends(require_access_key)
