"""Data access helpers for the storefront service."""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import Select, and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import (
    CartItem,
    Certificate,
    Course,
    Enrollment,
    Gadget,
    Order,
    OrderItem,
    Profile,
    Service,
    ServiceRequest,
)


class CatalogRepository:
    """Persistence helpers for gadgets."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_gadget(self, **fields: Any) -> Gadget:
        gadget = Gadget(**fields)
        self.session.add(gadget)
        await self.session.flush()
        await self.session.refresh(gadget, attribute_names=["created_at"])
        return gadget

    async def get_gadget(self, gadget_id: int) -> Gadget | None:
        result = await self.session.execute(select(Gadget).where(Gadget.id == gadget_id))
        return result.scalar_one_or_none()

    async def list_gadgets(
        self,
        *,
        limit: int,
        offset: int,
        category: str | None,
        in_stock: bool | None,
    ) -> tuple[list[Gadget], int]:
        base: Select[tuple[Gadget]] = select(Gadget)
        count: Select[tuple[int]] = select(func.count(Gadget.id))

        filters = []
        if category:
            filters.append(Gadget.category == category)
        if in_stock is not None:
            filters.append(Gadget.in_stock.is_(in_stock))
        if filters:
            base = base.where(and_(*filters))
            count = count.where(and_(*filters))

        total = (await self.session.execute(count)).scalar_one()
        result = await self.session.execute(
            base.order_by(Gadget.created_at.desc(), Gadget.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars()), total

    async def update_gadget(self, gadget: Gadget, updates: dict[str, Any]) -> Gadget:
        for key, value in updates.items():
            setattr(gadget, key, value)
        await self.session.flush()
        return gadget

    async def delete_gadget(self, gadget: Gadget) -> None:
        await self.session.delete(gadget)
        await self.session.flush()


class CartRepository:
    """Persistence helpers for cart lines."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_lines(self, *, user_id: str) -> list[tuple[CartItem, Gadget]]:
        # Inner join drops lines whose gadget has since been deleted.
        result = await self.session.execute(
            select(CartItem, Gadget)
            .join(Gadget, Gadget.id == CartItem.gadget_id)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
        )
        return [(item, gadget) for item, gadget in result.all()]

    async def insert_line(self, *, user_id: str, gadget_id: int, quantity: int) -> CartItem:
        async with self.session.begin_nested():
            item = CartItem(user_id=user_id, gadget_id=gadget_id, quantity=quantity)
            self.session.add(item)
            await self.session.flush()
        return item

    async def set_quantity(self, *, user_id: str, gadget_id: int, quantity: int) -> int:
        async with self.session.begin_nested():
            result = await self.session.execute(
                update(CartItem)
                .where(CartItem.user_id == user_id, CartItem.gadget_id == gadget_id)
                .values(quantity=quantity)
            )
        return result.rowcount

    async def delete_line(self, *, user_id: str, gadget_id: int) -> int:
        async with self.session.begin_nested():
            result = await self.session.execute(
                delete(CartItem).where(CartItem.user_id == user_id, CartItem.gadget_id == gadget_id)
            )
        return result.rowcount

    async def delete_all(self, *, user_id: str) -> int:
        async with self.session.begin_nested():
            result = await self.session.execute(delete(CartItem).where(CartItem.user_id == user_id))
        return result.rowcount


class OrderRepository:
    """Persistence helpers for orders and their line snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_order(self, *, order: dict[str, Any], items: Iterable[dict[str, Any]]) -> Order:
        # One savepoint: either the order and all of its items land, or nothing does.
        async with self.session.begin_nested():
            record = Order(**order, items=[OrderItem(**entry) for entry in items])
            self.session.add(record)
            await self.session.flush()
        await self.session.refresh(record, attribute_names=["items", "created_at", "updated_at"])
        return record

    async def get_order(self, order_id: int) -> Order | None:
        result = await self.session.execute(
            select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        )
        return result.scalar_one_or_none()

    async def list_orders(
        self,
        *,
        user_id: str | None,
        status: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Order], int]:
        base: Select[tuple[Order]] = select(Order)
        count: Select[tuple[int]] = select(func.count(Order.id))

        filters = []
        if user_id is not None:
            filters.append(Order.user_id == user_id)
        if status is not None:
            filters.append(Order.status == status)
        if filters:
            base = base.where(and_(*filters))
            count = count.where(and_(*filters))

        total = (await self.session.execute(count)).scalar_one()
        result = await self.session.execute(
            base.options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().unique()), total

    async def update_status(self, order: Order, *, status: str) -> Order:
        order.status = status
        await self.session.flush()
        await self.session.refresh(order, attribute_names=["updated_at"])
        return order

    async def delete_order(self, order: Order) -> None:
        await self.session.delete(order)
        await self.session.flush()


class ProfileRepository:
    """Persistence helpers for customer profiles."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_profile(self, *, user_id: str) -> Profile | None:
        result = await self.session.execute(select(Profile).where(Profile.user_id == user_id))
        return result.scalar_one_or_none()

    async def upsert_profile(self, *, user_id: str, updates: dict[str, Any]) -> Profile:
        profile = await self.get_profile(user_id=user_id)
        if profile is None:
            profile = Profile(user_id=user_id, **updates)
            self.session.add(profile)
        else:
            for key, value in updates.items():
                setattr(profile, key, value)
        await self.session.flush()
        await self.session.refresh(profile, attribute_names=["created_at", "updated_at"])
        return profile


class CertificateRepository:
    """Persistence helpers for issued certificates."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_certificate(self, **fields: Any) -> Certificate:
        async with self.session.begin_nested():
            certificate = Certificate(**fields)
            self.session.add(certificate)
            await self.session.flush()
        await self.session.refresh(certificate, attribute_names=["issued_at"])
        return certificate

    async def get_certificate(self, certificate_id: int) -> Certificate | None:
        result = await self.session.execute(select(Certificate).where(Certificate.id == certificate_id))
        return result.scalar_one_or_none()

    async def get_by_number(self, certificate_number: str) -> Certificate | None:
        result = await self.session.execute(
            select(Certificate).where(Certificate.certificate_number == certificate_number)
        )
        return result.scalar_one_or_none()

    async def list_certificates(self, *, limit: int, offset: int) -> tuple[list[Certificate], int]:
        total = (await self.session.execute(select(func.count(Certificate.id)))).scalar_one()
        result = await self.session.execute(
            select(Certificate)
            .order_by(Certificate.issued_at.desc(), Certificate.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars()), total

    async def update_certificate(self, certificate: Certificate, updates: dict[str, Any]) -> Certificate:
        async with self.session.begin_nested():
            for key, value in updates.items():
                setattr(certificate, key, value)
            await self.session.flush()
        return certificate

    async def delete_certificate(self, certificate: Certificate) -> None:
        await self.session.delete(certificate)
        await self.session.flush()


class CourseRepository:
    """Persistence helpers for the course catalog and enrollments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_course(self, **fields: Any) -> Course:
        course = Course(**fields)
        self.session.add(course)
        await self.session.flush()
        await self.session.refresh(course, attribute_names=["created_at"])
        return course

    async def get_course(self, course_id: int) -> Course | None:
        result = await self.session.execute(select(Course).where(Course.id == course_id))
        return result.scalar_one_or_none()

    async def list_courses(
        self,
        *,
        limit: int,
        offset: int,
        category: str | None,
    ) -> tuple[list[Course], int]:
        base: Select[tuple[Course]] = select(Course)
        count: Select[tuple[int]] = select(func.count(Course.id))
        if category:
            base = base.where(Course.category == category)
            count = count.where(Course.category == category)

        total = (await self.session.execute(count)).scalar_one()
        result = await self.session.execute(
            base.order_by(Course.created_at.desc(), Course.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars()), total

    async def delete_course(self, course: Course) -> None:
        await self.session.execute(delete(Enrollment).where(Enrollment.course_id == course.id))
        await self.session.delete(course)
        await self.session.flush()

    async def get_enrollment(self, *, user_id: str, course_id: int) -> Enrollment | None:
        result = await self.session.execute(
            select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        )
        return result.scalar_one_or_none()

    async def create_enrollment(self, *, user_id: str, course_id: int) -> Enrollment:
        async with self.session.begin_nested():
            enrollment = Enrollment(user_id=user_id, course_id=course_id)
            self.session.add(enrollment)
            await self.session.flush()
        await self.session.refresh(enrollment, attribute_names=["enrolled_at", "status", "progress", "course"])
        return enrollment

    async def list_enrollments(
        self,
        *,
        user_id: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Enrollment], int]:
        base: Select[tuple[Enrollment]] = select(Enrollment)
        count: Select[tuple[int]] = select(func.count(Enrollment.id))
        if user_id is not None:
            base = base.where(Enrollment.user_id == user_id)
            count = count.where(Enrollment.user_id == user_id)

        total = (await self.session.execute(count)).scalar_one()
        result = await self.session.execute(
            base.order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().unique()), total


class ServiceRepository:
    """Persistence helpers for repair services and the requests made for them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_service(self, **fields: Any) -> Service:
        service = Service(**fields)
        self.session.add(service)
        await self.session.flush()
        await self.session.refresh(service, attribute_names=["created_at"])
        return service

    async def get_service(self, service_id: int) -> Service | None:
        result = await self.session.execute(select(Service).where(Service.id == service_id))
        return result.scalar_one_or_none()

    async def list_services(self) -> list[Service]:
        result = await self.session.execute(select(Service).order_by(Service.created_at, Service.id))
        return list(result.scalars())

    async def create_request(self, **fields: Any) -> ServiceRequest:
        async with self.session.begin_nested():
            request = ServiceRequest(**fields)
            self.session.add(request)
            await self.session.flush()
        await self.session.refresh(request, attribute_names=["created_at", "updated_at", "status", "service"])
        return request

    async def get_request(self, request_id: int) -> ServiceRequest | None:
        result = await self.session.execute(select(ServiceRequest).where(ServiceRequest.id == request_id))
        return result.scalar_one_or_none()

    async def list_requests(
        self,
        *,
        user_id: str | None,
        status: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[ServiceRequest], int]:
        base: Select[tuple[ServiceRequest]] = select(ServiceRequest)
        count: Select[tuple[int]] = select(func.count(ServiceRequest.id))

        filters = []
        if user_id is not None:
            filters.append(ServiceRequest.user_id == user_id)
        if status is not None:
            filters.append(ServiceRequest.status == status)
        if filters:
            base = base.where(and_(*filters))
            count = count.where(and_(*filters))

        total = (await self.session.execute(count)).scalar_one()
        result = await self.session.execute(
            base.order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().unique()), total

    async def update_request_status(self, request: ServiceRequest, *, status: str) -> ServiceRequest:
        request.status = status
        await self.session.flush()
        await self.session.refresh(request, attribute_names=["updated_at"])
        return request

    async def delete_request(self, request: ServiceRequest) -> None:
        await self.session.delete(request)
        await self.session.flush()
