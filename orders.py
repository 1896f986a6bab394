"""
Order placement, history and tracking.
"""
import logging
import os
import secrets
import uuid
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import get_current_user
from cart import CartSession, get_cart_session
from database import get_db
from models import CartItem, CheckoutState, Order, OrderItem, OrderStatusHistory, User, utcnow
from payments import display_details
from pricing import max_estimated_days, points_for
from schemas import (
    CancelRequest, OrderOut, PlaceOrderRequest, StatusUpdateRequest, TrackingResponse,
)

logger = logging.getLogger(__name__)

# Staff endpoints stay closed until ADMIN_API_KEY is configured
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

ORDER_FLOW = ["pending", "confirmed", "processing", "shipped", "delivered"]
STEP_LABELS = {
    "pending": "Order Placed",
    "confirmed": "Order Confirmed",
    "processing": "Processing",
    "shipped": "Shipped",
    "delivered": "Delivered",
}
CANCELLABLE = {"pending", "confirmed"}

router = APIRouter(prefix="/api/orders", tags=["orders"])


def format_address(address) -> str:
    if address is None:
        return "No address selected"
    parts = [
        address.full_name,
        address.phone,
        address.address_line1,
        address.address_line2,
        address.landmark,
        f"{address.city}, {address.state} {address.postal_code}",
        address.country,
    ]
    return ", ".join(part for part in parts if part)


def generate_order_number() -> str:
    return "BB-" + uuid.uuid4().hex[:8].upper()


def can_transition(current: str, new: str) -> bool:
    """Orders only move forward through the flow; cancelling is allowed early on."""
    if new == "cancelled":
        return current in CANCELLABLE
    if current not in ORDER_FLOW or new not in ORDER_FLOW:
        return False
    return ORDER_FLOW.index(new) > ORDER_FLOW.index(current)


def progress_steps(status: str) -> List[dict]:
    """Tracking timeline; every step up to and including the current status is completed."""
    reached = ORDER_FLOW.index(status) if status in ORDER_FLOW else -1
    return [
        {"step": STEP_LABELS[step], "status": step, "completed": index <= reached}
        for index, step in enumerate(ORDER_FLOW)
    ]


def set_status(db: Session, order: Order, status: str, notes: Optional[str] = None):
    order.status = status
    order.status_updated_at = utcnow()
    if status == "delivered":
        order.points_awarded = points_for(order.total)
        if order.payment_method == "cod":
            order.payment_status = "paid"
    if status == "cancelled" and order.payment_status == "paid":
        order.payment_status = "refunded"
    db.add(OrderStatusHistory(order_id=order.id, status=status, notes=notes))


def place_order(session: CartSession, agreements: PlaceOrderRequest) -> Order:
    """
    Turn the user's cart and checkout selections into an order.

    The whole placement is one transaction: on any failure nothing is
    written and the cart stays as it was.
    """
    if not (agreements.accept_terms and agreements.accept_privacy and agreements.confirm_order):
        raise HTTPException(
            status_code=400,
            detail="Please accept the terms, the privacy policy and confirm the order"
        )

    db = session.db
    user = session.user
    state = session.state
    totals = session.totals()
    errors = session.validation_errors(totals)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))

    unavailable = [line.product.name for line in session.items() if not line.product.in_stock]
    if unavailable:
        raise HTTPException(
            status_code=400,
            detail=f"Some items are no longer available: {', '.join(unavailable)}"
        )

    address = state.address
    option = state.delivery_option
    now = utcnow()
    prepaid = state.payment_method != "cod"

    try:
        order = Order(
            order_number=generate_order_number(),
            user_id=user.id,
            customer_name=address.full_name,
            email=address.email or user.email,
            phone=address.phone,
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            delivery_charge=totals.delivery_charge,
            payment_charges=totals.payment_charge,
            total=totals.final_amount,
            coupon_code=state.coupon_code if totals.discount_amount > 0 else None,
            payment_method=state.payment_method,
            payment_details=dict(state.payment_details or {}),
            payment_status="paid" if prepaid else "pending",
            # No gateway call: prepaid methods get a simulated capture reference
            payment_reference=f"SIM-{uuid.uuid4().hex[:12].upper()}" if prepaid else None,
            delivery_address=format_address(address),
            delivery_option_id=option.id,
            status="pending",
            estimated_delivery_date=now + timedelta(days=max_estimated_days(option.estimated_days)),
            created_at=now,
            status_updated_at=now,
        )
        db.add(order)
        db.flush()

        for line in session.items():
            db.add(OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                product_name=line.product.name,
                unit_price=line.product.price,
                quantity=line.quantity,
            ))
        db.add(OrderStatusHistory(order_id=order.id, status="pending", notes="Order placed"))

        db.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)
        db.query(CheckoutState).filter(CheckoutState.user_id == user.id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Order placement failed for user_id=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to place order. Please try again.")

    db.refresh(order)
    logger.info(
        "Order %s placed by user_id=%s total=%s payment=%s (%s)",
        order.order_number, user.id, order.total, order.payment_method,
        display_details(order.payment_method, order.payment_details),
    )
    return order


def _own_order(db: Session, user: User, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id, Order.user_id == user.id).first()
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    if not ADMIN_API_KEY or not x_admin_key:
        raise HTTPException(status_code=403, detail="Admin access required")
    if not secrets.compare_digest(x_admin_key.encode(), ADMIN_API_KEY.encode()):
        raise HTTPException(status_code=403, detail="Admin access required")


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("", response_model=OrderOut, status_code=201)
def create_order(agreements: PlaceOrderRequest, session: CartSession = Depends(get_cart_session)):
    """
    Place an order from the current cart and checkout selections.

    Raises:
    - 400 if the agreements are missing or checkout is incomplete
    """
    return place_order(session, agreements)


@router.get("", response_model=List[OrderOut])
def list_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return (
        db.query(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _own_order(db, user, order_id)


@router.get("/{order_id}/tracking", response_model=TrackingResponse)
def track_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = _own_order(db, user, order_id)
    return {
        "order": order,
        "status_history": order.status_history,
        "progress_steps": progress_steps(order.status),
        "can_cancel": order.status in CANCELLABLE,
    }


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: int, payload: Optional[CancelRequest] = None,
                 user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = _own_order(db, user, order_id)
    if order.status not in CANCELLABLE:
        raise HTTPException(status_code=400, detail=f"Order cannot be cancelled once {order.status}")
    notes = (payload.reason if payload and payload.reason else None) or "Cancelled by customer"
    set_status(db, order, "cancelled", notes)
    db.commit()
    db.refresh(order)
    logger.info("Order %s cancelled by user_id=%s", order.order_number, user.id)
    return order


@router.patch("/{order_id}/status", response_model=OrderOut, dependencies=[Depends(require_admin)])
def update_order_status(order_id: int, payload: StatusUpdateRequest, db: Session = Depends(get_db)):
    """Move an order along its fulfilment flow (staff only)."""
    order = db.get(Order, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if not can_transition(order.status, payload.status):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change order status from {order.status} to {payload.status}"
        )
    set_status(db, order, payload.status, payload.notes)
    db.commit()
    db.refresh(order)
    logger.info("Order %s moved to %s", order.order_number, order.status)
    return order
