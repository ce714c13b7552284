from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.common import (
    DEFAULT_APP_NAME,
    ServiceSettings,
    build_app,
    close_redis_connections,
    configure_logging,
    create_schema,
    dispose_engines,
    get_session_factory,
    resolve_database_url,
    resolve_redis,
)
from services.common.kafka import KafkaConsumerStub, KafkaProducerStub

from .api.admin import router as admin_router
from .api.cart import router as cart_router
from .api.certificates import router as certificates_router
from .api.checkout import router as checkout_router
from .api.courses import router as courses_router
from .api.enrollments import router as enrollments_router
from .api.gadgets import router as gadgets_router
from .api.health import router as health_router
from .api.orders import router as orders_router
from .api.profile import router as profile_router
from .api.service_requests import router as service_requests_router
from .api.services import router as services_router
from .dashboard import DashboardAggregator
from .events import StorefrontEventPublisher
from .feed import AdminNotificationFeed
from .models import Base

SERVICE_NAME = "Storefront Service"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./storefront.db"


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    """Create the Storefront Service FastAPI application."""

    resolved_settings = settings or ServiceSettings()
    if resolved_settings.app_name == DEFAULT_APP_NAME:
        resolved_settings = resolved_settings.model_copy(update={"app_name": SERVICE_NAME})
    configure_logging(resolved_settings)
    database_url = resolve_database_url(resolved_settings, DEFAULT_DATABASE_URL)
    session_factory = get_session_factory(database_url)

    redis_client = resolve_redis(resolved_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        kafka_producer: KafkaProducerStub | None = None
        feed_consumer: KafkaConsumerStub | None = None
        app.state.settings = resolved_settings
        app.state.session_factory = session_factory
        try:
            if resolved_settings.auto_create_schema:
                await create_schema(database_url, Base.metadata)
            kafka_producer = KafkaProducerStub(bootstrap_servers=resolved_settings.kafka_bootstrap_servers)
            await kafka_producer.connect()
            app.state.kafka_producer = kafka_producer
            app.state.event_publisher = StorefrontEventPublisher(kafka_producer)

            admin_feed = AdminNotificationFeed(size=resolved_settings.admin_feed_size)
            feed_consumer = KafkaConsumerStub(admin_feed.topics, admin_feed.handle)
            await feed_consumer.start()
            app.state.admin_feed = admin_feed
            app.state.admin_feed_consumer = feed_consumer

            app.state.dashboard = DashboardAggregator(
                session_factory,
                redis=redis_client,
                cache_ttl=resolved_settings.dashboard_cache_ttl_seconds,
            )
            yield
        finally:
            app.state.session_factory = None  # type: ignore[assignment]
            app.state.kafka_producer = None
            app.state.event_publisher = None
            app.state.admin_feed = None
            app.state.admin_feed_consumer = None
            app.state.dashboard = None
            if feed_consumer is not None:
                await feed_consumer.stop()
            if kafka_producer is not None:
                await kafka_producer.close()
            await dispose_engines()
            if redis_client is not None:
                await close_redis_connections()

    app = build_app(resolved_settings, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(gadgets_router)
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(services_router)
    app.include_router(service_requests_router)
    app.include_router(profile_router)
    app.include_router(certificates_router)
    app.include_router(admin_router)
    return app


app = create_app()
