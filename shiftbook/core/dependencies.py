"""
FastAPI dependencies
"""

from fastapi import Depends, Request
from sqlmodel import Session

from shiftbook.core.config import get_settings
from shiftbook.core.database import get_session
from shiftbook.services import Services, build_services


def get_services(request: Request, session: Session = Depends(get_session)) -> Services:
    """Wire a service set around the request's session"""
    return build_services(
        session,
        settings=get_settings(),
        driver_cache=request.app.state.driver_cache,
    )
