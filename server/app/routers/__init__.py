"""API routers for the RBI registry service."""

from app.routers import (
    addresses,
    admin,
    auth,
    dashboard,
    households,
    occupations,
    residents,
    users,
    whoami,
)  # noqa: F401
