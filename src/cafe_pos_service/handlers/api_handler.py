"""FastAPI application for point-of-sale, kitchen and stock endpoints."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Union

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cafe_pos_service.auth.api_dependencies import get_principal_from_header, require_role
from cafe_pos_service.auth.token_validator import BearerTokenValidator, Principal
from cafe_pos_service.models.api_model import ApiModel
from cafe_pos_service.models.notification_models import Notification
from cafe_pos_service.models.order_models import (
    LineAvailability,
    LineConsumption,
    Order,
    OrderStatusUpdate,
    ProcessOrderRequest,
)
from cafe_pos_service.models.stock_models import StockItem
from cafe_pos_service.services.exceptions import (
    InvalidStatusTransitionError,
    MenuItemNotFoundError,
    OrderNotFoundError,
    StockItemNotFoundError,
)
from cafe_pos_service.services.notification_service import NotificationHub
from cafe_pos_service.services.order_service import (
    FailureKind,
    OrderProcessingResult,
    OrderService,
)
from cafe_pos_service.services.stock_service import StockService

logger = logging.getLogger(__name__)

FAILURE_STATUS_CODES = {
    FailureKind.VALIDATION_ERROR: 400,
    FailureKind.NOT_FOUND: 404,
    FailureKind.STOCK_UNAVAILABLE: 409,
    FailureKind.STOCK_CONSUMPTION_ERROR: 409,
    FailureKind.SERVER_ERROR: 500,
}


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class ProcessOrderResponse(ApiModel):
    """Response model for a successfully processed order."""

    success: bool
    order: Order
    stock_consumption: list[LineConsumption]
    validation: list[LineAvailability]
    message: str


class AvailabilityResponse(ApiModel):
    """Response model for the availability check."""

    availability_check: list[LineAvailability]
    timestamp: datetime


class RestockRequest(ApiModel):
    """Request model for restocking a stock item."""

    amount: Decimal = Field(..., gt=0)


class NotificationReadResponse(ApiModel):
    """Response model for marking a notification as read."""

    id: str
    read: bool


def error_response(
    status_code: int, failure_type: str, message: str, **extra: Any
) -> JSONResponse:
    """Build a structured error response.

    Args:
        status_code: HTTP status code
        failure_type: Machine readable failure kind
        message: Human readable message
        **extra: Additional fields for the body

    Returns:
        JSONResponse with type, message and any extra fields
    """
    content = {"type": failure_type, "message": message, **extra}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def failure_response(result: OrderProcessingResult) -> JSONResponse:
    """Translate a failed OrderProcessingResult into an HTTP response."""
    kind = result.failure_kind or FailureKind.SERVER_ERROR
    extra: dict[str, Any] = {"details": result.details}

    if kind == FailureKind.STOCK_UNAVAILABLE and result.validation:
        line = result.validation[0]
        extra["unavailableItem"] = {
            "menuId": line.menu_id,
            "name": line.name,
            "missingIngredients": extra["details"],
        }

    return error_response(FAILURE_STATUS_CODES[kind], kind.value, result.message, **extra)


def parse_availability_lines(menu_ids: str, quantities: str | None) -> list[tuple[str, int]]:
    """Parse the comma separated availability query.

    Missing quantities default to 1.

    Raises:
        ValueError: If no menu ids are given or a quantity is not a positive integer
    """
    ids = [menu_id.strip() for menu_id in menu_ids.split(",") if menu_id.strip()]
    if not ids:
        raise ValueError("menuIds must name at least one menu item")

    raw_quantities = quantities.split(",") if quantities else []
    lines = []
    for index, menu_id in enumerate(ids):
        raw = raw_quantities[index].strip() if index < len(raw_quantities) else ""
        quantity = int(raw) if raw else 1
        if quantity <= 0:
            raise ValueError(f"Quantity for {menu_id} must be a positive integer")
        lines.append((menu_id, quantity))
    return lines


def create_app(
    order_service: OrderService,
    stock_service: StockService,
    notification_hub: NotificationHub,
    staff_tokens: dict[str, Principal],
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        order_service: Service for placing and managing orders
        stock_service: Service for stock reads and restocking
        notification_hub: Hub holding staff notifications
        staff_tokens: Mapping of accepted bearer tokens to principals

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Cafe POS API",
        description="Order entry, kitchen and stock API for the cafe point of sale",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.order_service = order_service
    app.state.stock_service = stock_service
    app.state.notification_hub = notification_hub
    app.state.token_validator = BearerTokenValidator(tokens=staff_tokens)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            400, FailureKind.VALIDATION_ERROR.value, "Invalid request", details=exc.errors()
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    def authenticate(authorization: str | None = Header(None)) -> Principal:
        """Dependency to resolve the calling principal."""
        return get_principal_from_header(
            authorization=authorization, validator=app.state.token_validator
        )

    def authenticate_admin(principal: Principal = Depends(authenticate)) -> Principal:
        """Dependency requiring an admin principal."""
        return require_role(principal, "admin")

    @app.post(
        "/orders/process",
        status_code=201,
        response_model=ProcessOrderResponse,
        tags=["Orders"],
    )
    async def process_order(
        request: ProcessOrderRequest,
        principal: Principal = Depends(authenticate),
    ) -> Union[ProcessOrderResponse, JSONResponse]:
        """Place an order, consuming recipe ingredients from stock.

        Returns:
            The created order with its stock consumption log (201), or a
            structured failure (400, 404, 409 or 500)
        """
        try:
            result: OrderProcessingResult = await app.state.order_service.process_order(
                request, created_by=principal.user_id
            )
        except Exception as e:
            logger.exception(f"Process order error: {e}")
            return error_response(
                500, FailureKind.SERVER_ERROR.value, str(e) or "Failed to process order"
            )

        if not result.success or result.order is None:
            return failure_response(result)

        return ProcessOrderResponse(
            success=True,
            order=result.order,
            stock_consumption=result.stock_consumption,
            validation=result.validation,
            message=result.message,
        )

    @app.get("/orders/process", response_model=AvailabilityResponse, tags=["Orders"])
    async def check_availability(
        menu_ids: str = Query(..., alias="menuIds"),
        quantities: str | None = Query(None),
        _principal: Principal = Depends(authenticate),
    ) -> Union[AvailabilityResponse, JSONResponse]:
        """Read-only availability check for a batch of menu items.

        Args:
            menu_ids: Comma separated menu item identifiers
            quantities: Comma separated quantities, matched by position

        Returns:
            One availability report per requested menu item
        """
        try:
            lines = parse_availability_lines(menu_ids, quantities)
            availability = await app.state.order_service.check_availability(lines)
        except ValueError as e:
            return error_response(400, FailureKind.VALIDATION_ERROR.value, str(e))
        except MenuItemNotFoundError as e:
            return error_response(
                404,
                FailureKind.NOT_FOUND.value,
                str(e),
                details=[{"lineIndex": e.line_index, "menuId": e.menu_id}],
            )

        return AvailabilityResponse(
            availability_check=availability, timestamp=app.state.order_service.now()
        )

    @app.get("/orders/{order_id}", response_model=Order, tags=["Orders"])
    async def get_order(
        order_id: str,
        _principal: Principal = Depends(authenticate),
    ) -> Order:
        """Get an order by ID."""
        try:
            order: Order = await app.state.order_service.get_order(order_id)
        except OrderNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return order

    @app.put("/orders/{order_id}/status", response_model=Order, tags=["Orders"])
    async def update_order_status(
        order_id: str,
        update: OrderStatusUpdate,
        _principal: Principal = Depends(authenticate),
    ) -> Order:
        """Move an order to its next status, or cancel it.

        Raises:
            HTTPException: 404 if the order does not exist, 409 if the
                transition is not allowed
        """
        try:
            order: Order = await app.state.order_service.update_order_status(
                order_id, update.status
            )
        except OrderNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except InvalidStatusTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return order

    @app.delete("/orders/{order_id}", status_code=204, tags=["Orders"])
    async def delete_order(
        order_id: str,
        _principal: Principal = Depends(authenticate_admin),
    ) -> Response:
        """Delete an order. Consumed stock is not restored."""
        try:
            await app.state.order_service.delete_order(order_id)
        except OrderNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return Response(status_code=204)

    @app.get("/stock/{stock_id}", response_model=StockItem, tags=["Stock"])
    async def get_stock_item(
        stock_id: str,
        _principal: Principal = Depends(authenticate),
    ) -> StockItem:
        """Get a stock item by ID."""
        try:
            stock_item: StockItem = await app.state.stock_service.get_stock_item(stock_id)
        except StockItemNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return stock_item

    @app.post("/stock/{stock_id}/restock", response_model=StockItem, tags=["Stock"])
    async def restock(
        stock_id: str,
        request: RestockRequest,
        _principal: Principal = Depends(authenticate_admin),
    ) -> StockItem:
        """Add received quantity to a stock item."""
        try:
            stock_item: StockItem = await app.state.stock_service.restock(
                stock_id, request.amount
            )
        except StockItemNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return stock_item

    @app.get("/notifications", response_model=list[Notification], tags=["Notifications"])
    async def get_notifications(
        principal: Principal = Depends(authenticate),
    ) -> list[Notification]:
        """Get the latest notifications visible to the caller."""
        notifications: list[Notification] = app.state.notification_hub.list_for(
            role=principal.role, user_id=principal.user_id
        )
        return notifications

    @app.post(
        "/notifications/{notification_id}/read",
        response_model=NotificationReadResponse,
        tags=["Notifications"],
    )
    async def mark_notification_read(
        notification_id: str,
        principal: Principal = Depends(authenticate),
    ) -> NotificationReadResponse:
        """Mark a notification as read.

        Notifications targeted at another role or user are reported as not found.
        """
        if not app.state.notification_hub.mark_as_read(
            notification_id, role=principal.role, user_id=principal.user_id
        ):
            raise HTTPException(
                status_code=404, detail=f"Notification {notification_id} not found"
            )
        return NotificationReadResponse(id=notification_id, read=True)

    return app
