"""Dependency helpers for the storefront service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import cast

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.common import ServiceSettings, bind_user_id, lifespan_session

from .cart import CartStore, SqlCartBackend
from .checkout import OrderIntentFormatter, SqlOrderWriter
from .dashboard import DashboardAggregator
from .events import StorefrontEventPublisher
from .feed import AdminNotificationFeed
from .identity import (
    USER_EMAIL_HEADER,
    USER_FULL_NAME_HEADER,
    USER_ID_HEADER,
    CurrentUser,
    user_from_headers,
)
from .notices import NoticeCollector
from .repository import (
    CartRepository,
    CatalogRepository,
    CertificateRepository,
    CourseRepository,
    OrderRepository,
    ProfileRepository,
    ServiceRepository,
)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an AsyncSession for the current request."""

    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with lifespan_session(session_factory) as session:
        yield session


def get_settings(request: Request) -> ServiceSettings:
    return cast(ServiceSettings, request.app.state.settings)


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    x_user_email: str | None = Header(default=None, alias=USER_EMAIL_HEADER),
    x_user_full_name: str | None = Header(default=None, alias=USER_FULL_NAME_HEADER),
) -> CurrentUser | None:
    """Resolve the gateway-asserted identity; None when the caller is anonymous."""

    user = user_from_headers(x_user_id, x_user_email, x_user_full_name)
    bind_user_id(user.id if user else None)
    return user


def require_user(user: CurrentUser | None = Depends(get_current_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Sign in required", "redirect": "/auth"},
        )
    return user


def get_notices() -> NoticeCollector:
    return NoticeCollector()


def get_catalog_repository(session: AsyncSession = Depends(get_session)) -> CatalogRepository:
    return CatalogRepository(session)


def get_order_repository(session: AsyncSession = Depends(get_session)) -> OrderRepository:
    return OrderRepository(session)


def get_profile_repository(session: AsyncSession = Depends(get_session)) -> ProfileRepository:
    return ProfileRepository(session)


def get_certificate_repository(session: AsyncSession = Depends(get_session)) -> CertificateRepository:
    return CertificateRepository(session)


def get_course_repository(session: AsyncSession = Depends(get_session)) -> CourseRepository:
    return CourseRepository(session)


def get_service_repository(session: AsyncSession = Depends(get_session)) -> ServiceRepository:
    return ServiceRepository(session)


def get_event_publisher(request: Request) -> StorefrontEventPublisher | None:
    publisher = getattr(request.app.state, "event_publisher", None)
    if publisher is None:
        return None
    return cast(StorefrontEventPublisher, publisher)


def get_admin_feed(request: Request) -> AdminNotificationFeed:
    feed = getattr(request.app.state, "admin_feed", None)
    if feed is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin notification feed is not running",
        )
    return cast(AdminNotificationFeed, feed)


def get_dashboard(request: Request) -> DashboardAggregator:
    aggregator = getattr(request.app.state, "dashboard", None)
    if aggregator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard statistics are not available",
        )
    return cast(DashboardAggregator, aggregator)


async def invalidate_dashboard(request: Request) -> None:
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is not None:
        await dashboard.invalidate()


async def get_cart_store(
    session: AsyncSession = Depends(get_session),
    catalog: CatalogRepository = Depends(get_catalog_repository),
    user: CurrentUser | None = Depends(get_current_user),
    notices: NoticeCollector = Depends(get_notices),
) -> CartStore:
    """Return a cart store already loaded for the current user."""

    store = CartStore(SqlCartBackend(CartRepository(session), catalog), notifier=notices)
    await store.load(user)
    return store


def get_checkout(
    store: CartStore = Depends(get_cart_store),
    orders: OrderRepository = Depends(get_order_repository),
    notices: NoticeCollector = Depends(get_notices),
    settings: ServiceSettings = Depends(get_settings),
    event_publisher: StorefrontEventPublisher | None = Depends(get_event_publisher),
) -> OrderIntentFormatter:
    return OrderIntentFormatter(
        store,
        SqlOrderWriter(orders),
        business_name=settings.business_name,
        whatsapp_number=settings.whatsapp_number,
        notifier=notices,
        event_publisher=event_publisher,
    )
