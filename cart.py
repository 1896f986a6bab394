"""
Cart and checkout state.

``CartSession`` is the per-user state container behind the storefront's cart
page and four-step checkout (cart -> shipping -> payment -> review). Cart
lines live in ``cart_items``; the coupon, address, delivery option and
payment summary live in the user's ``checkout_states`` row. Every mutation
commits on success and rolls back on failure, and each endpoint answers with
the fresh server snapshot so the client can reconcile its optimistic view.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from models import Address, CartItem, CheckoutState, Coupon, DeliveryOption, Order, Product, User
from payments import display_details, method_display_name, parse_payment, sanitize_payment
from pricing import OrderTotals, apply_coupon, calculate_subtotal, calculate_totals, money
from schemas import (
    AddressSelection, CartItemRequest, CartQuantityUpdate, CartResponse, CartSyncRequest,
    CheckoutStateOut, CouponRequest, DeliverySelection, PaymentMethodSelection,
    ValidationResult, MAX_QUANTITY_PER_ITEM,
)

logger = logging.getLogger(__name__)

CHECKOUT_STEPS = ["cart", "shipping", "payment", "review"]

cart_router = APIRouter(prefix="/api/cart", tags=["cart"])
checkout_router = APIRouter(prefix="/api/checkout", tags=["checkout"])


class CartSession:
    """Cart lines and checkout selections of one signed-in user."""

    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def state(self) -> CheckoutState:
        state = self.db.query(CheckoutState).filter(CheckoutState.user_id == self.user.id).first()
        if state is None:
            state = CheckoutState(user_id=self.user.id)
            self.db.add(state)
            self.db.flush()
        return state

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Cart update failed for user_id=%s", self.user.id)
            raise

    def _invalidate_payment(self, state: CheckoutState):
        # A QR code payment is confirmed for an exact amount
        if state.payment_method == "qrcode":
            state.payment_validated = False

    # ------------------------------------------------------------------
    # cart lines
    # ------------------------------------------------------------------

    def items(self) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == self.user.id)
            .order_by(CartItem.id)
            .all()
        )

    def _line(self, product_id: int) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == self.user.id, CartItem.product_id == product_id)
            .first()
        )

    def _available_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        if not product.in_stock:
            raise HTTPException(
                status_code=400,
                detail=f"Product '{product.name}' is currently not available"
            )
        return product

    def add_item(self, product_id: int, quantity: int = 1) -> CartItem:
        if quantity <= 0:
            raise HTTPException(status_code=400, detail="Quantity must be greater than 0")
        self._available_product(product_id)

        line = self._line(product_id)
        new_quantity = quantity + (line.quantity if line else 0)
        if new_quantity > MAX_QUANTITY_PER_ITEM:
            raise HTTPException(
                status_code=400,
                detail=f"You can add at most {MAX_QUANTITY_PER_ITEM} of one item"
            )
        if line is None:
            line = CartItem(user_id=self.user.id, product_id=product_id, quantity=new_quantity)
            self.db.add(line)
        else:
            line.quantity = new_quantity
        self._invalidate_payment(self.state)
        self._commit()
        return line

    def update_quantity(self, product_id: int, quantity: int):
        line = self._line(product_id)
        if line is None:
            raise HTTPException(status_code=404, detail="Item not in cart")
        if quantity <= 0:
            self.db.delete(line)
        else:
            if quantity > line.quantity:
                self._available_product(product_id)
            line.quantity = quantity
        self._invalidate_payment(self.state)
        self._commit()

    def remove_item(self, product_id: int):
        line = self._line(product_id)
        if line is None:
            raise HTTPException(status_code=404, detail="Item not in cart")
        self.db.delete(line)
        self._invalidate_payment(self.state)
        self._commit()

    def clear(self):
        self.db.query(CartItem).filter(CartItem.user_id == self.user.id).delete(synchronize_session=False)
        self._invalidate_payment(self.state)
        self._commit()

    def sync(self, lines: List[CartItemRequest]):
        """
        Merge a cart built before sign-in. For products in both carts the
        larger quantity wins; unknown or unavailable products are skipped.
        """
        for incoming in lines:
            product = self.db.get(Product, incoming.product_id)
            if product is None or not product.in_stock:
                logger.info("Skipping unavailable product %s during cart sync", incoming.product_id)
                continue
            line = self._line(incoming.product_id)
            if line is None:
                self.db.add(CartItem(
                    user_id=self.user.id,
                    product_id=incoming.product_id,
                    quantity=incoming.quantity,
                ))
                self.db.flush()
            else:
                line.quantity = max(line.quantity, incoming.quantity)
        self._invalidate_payment(self.state)
        self._commit()

    def subtotal(self) -> Decimal:
        return calculate_subtotal((line.product.price, line.quantity) for line in self.items())

    # ------------------------------------------------------------------
    # coupon
    # ------------------------------------------------------------------

    def _has_previous_orders(self) -> bool:
        return self.db.query(Order.id).filter(Order.user_id == self.user.id).first() is not None

    def _coupon(self, code: Optional[str]) -> Optional[Coupon]:
        if not code:
            return None
        return self.db.query(Coupon).filter(Coupon.code == code.strip().upper()).first()

    def coupon_discount(self, subtotal: Decimal):
        """(coupon, discount, message) for the stored coupon code."""
        state = self.state
        if not state.coupon_code:
            return None, Decimal("0.00"), None
        coupon = self._coupon(state.coupon_code)
        discount, message = apply_coupon(subtotal, coupon, self._has_previous_orders())
        return coupon, discount, message

    def apply_coupon(self, code: str) -> Decimal:
        code = code.strip().upper()
        coupon = self._coupon(code)
        discount, message = apply_coupon(self.subtotal(), coupon, self._has_previous_orders())
        if message:
            raise HTTPException(status_code=400, detail=message)
        state = self.state
        state.coupon_code = coupon.code
        self._invalidate_payment(state)
        self._commit()
        logger.info("Coupon %s applied for user_id=%s", coupon.code, self.user.id)
        return discount

    def remove_coupon(self):
        state = self.state
        state.coupon_code = None
        self._invalidate_payment(state)
        self._commit()

    # ------------------------------------------------------------------
    # shipping
    # ------------------------------------------------------------------

    def set_address(self, address_id: int):
        address = (
            self.db.query(Address)
            .filter(Address.id == address_id, Address.user_id == self.user.id)
            .first()
        )
        if address is None:
            raise HTTPException(status_code=404, detail="Address not found")
        self.state.address_id = address.id
        self._commit()

    def set_delivery_option(self, option_id: str):
        option = self.db.get(DeliveryOption, option_id)
        if option is None or not option.is_active:
            raise HTTPException(status_code=404, detail="Delivery option not found")
        state = self.state
        state.delivery_option_id = option.id
        self._invalidate_payment(state)
        self._commit()

    # ------------------------------------------------------------------
    # payment
    # ------------------------------------------------------------------

    def set_payment_method(self, method: str):
        """Select a method; details entered for another method are dropped."""
        state = self.state
        if state.payment_method != method:
            state.payment_method = method
            state.payment_details = None
            state.payment_validated = False
        self._commit()

    def update_payment_data(self, data: dict):
        """Validate the payment form for its method and keep the sanitized summary."""
        try:
            payment = parse_payment(data)
        except ValidationError as exc:
            raise HTTPException(
                status_code=422,
                detail=[
                    {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
                    for error in exc.errors()
                ],
            )
        state = self.state
        state.payment_method = payment.method
        state.payment_details = sanitize_payment(payment)
        state.payment_validated = True
        self._commit()
        logger.info("Payment details saved for user_id=%s method=%s", self.user.id, payment.method)

    def validate_payment_data(self, totals: Optional[OrderTotals] = None) -> bool:
        state = self.state
        if not state.payment_method or not state.payment_validated or not state.payment_details:
            return False
        if state.payment_method == "qrcode":
            totals = totals or self.totals()
            confirmed = state.payment_details.get("amount")
            if confirmed is None or money(confirmed) != totals.final_amount:
                return False
        return True

    # ------------------------------------------------------------------
    # derived values
    # ------------------------------------------------------------------

    def totals(self) -> OrderTotals:
        subtotal = self.subtotal()
        _, discount, _ = self.coupon_discount(subtotal)
        state = self.state
        return calculate_totals(subtotal, discount, state.delivery_option, state.payment_method)

    def validation_errors(self, totals: Optional[OrderTotals] = None) -> List[str]:
        state = self.state
        errors = []
        if not self.items():
            errors.append("Cart is empty")
        if state.address is None:
            errors.append("Shipping address not selected")
        if state.delivery_option is None:
            errors.append("Delivery option not selected")
        if not self.validate_payment_data(totals):
            errors.append("Payment information incomplete")
        return errors

    def completed_steps(self, totals: Optional[OrderTotals] = None) -> List[str]:
        """Steps are completed in order; a later step never counts while an earlier one is open."""
        state = self.state
        requirements = [
            ("cart", lambda: bool(self.items())),
            ("shipping", lambda: state.address is not None and state.delivery_option is not None),
            ("payment", lambda: self.validate_payment_data(totals)),
        ]
        completed = []
        for step, requirement in requirements:
            if not requirement():
                break
            completed.append(step)
        return completed

    def current_step(self, completed: List[str]) -> str:
        for step in CHECKOUT_STEPS:
            if step not in completed:
                return step
        return "review"

    def cart_snapshot(self) -> dict:
        lines = [_cart_line(line) for line in self.items()]
        return {
            "items": lines,
            "item_count": sum(line["quantity"] for line in lines),
            "subtotal": self.subtotal(),
        }

    def snapshot(self) -> dict:
        state = self.state
        subtotal = self.subtotal()
        coupon, discount, coupon_message = self.coupon_discount(subtotal)
        totals = calculate_totals(subtotal, discount, state.delivery_option, state.payment_method)
        completed = self.completed_steps(totals)

        applied_coupon = None
        if coupon is not None:
            applied_coupon = {
                "code": coupon.code,
                "description": coupon.description,
                "discount_amount": discount,
                "message": coupon_message,
            }

        return {
            "items": [_cart_line(line) for line in self.items()],
            "totals": totals.as_dict(),
            "applied_coupon": applied_coupon,
            "shipping_address": state.address,
            "delivery_option": state.delivery_option,
            "payment": {
                "selected_method": state.payment_method,
                "method_name": method_display_name(state.payment_method),
                "details": display_details(state.payment_method, state.payment_details),
                "validated": self.validate_payment_data(totals),
            },
            "current_step": self.current_step(completed),
            "completed_steps": completed,
            "validation_errors": self.validation_errors(totals),
        }


def _cart_line(line: CartItem) -> dict:
    price = money(line.product.price)
    return {
        "product_id": line.product_id,
        "product_name": line.product.name,
        "image": line.product.image,
        "quantity": line.quantity,
        "unit_price": price,
        "total_price": money(price * line.quantity),
        "in_stock": line.product.in_stock,
    }


def get_cart_session(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CartSession:
    return CartSession(db, user)


# ============================================================================
# CART ENDPOINTS
# ============================================================================

@cart_router.get("", response_model=CartResponse)
def get_cart(session: CartSession = Depends(get_cart_session)):
    return session.cart_snapshot()


@cart_router.post("", response_model=CartResponse)
def add_to_cart(item: CartItemRequest, session: CartSession = Depends(get_cart_session)):
    """
    Add a product to the cart.

    Adding a product that is already in the cart increases its quantity.

    Raises:
    - 404 if product not found
    - 400 if the product is out of stock or the quantity limit is exceeded
    """
    session.add_item(item.product_id, item.quantity)
    return session.cart_snapshot()


@cart_router.put("/{product_id}", response_model=CartResponse)
def update_cart_item(product_id: int, update: CartQuantityUpdate,
                     session: CartSession = Depends(get_cart_session)):
    """Set a line's quantity; 0 removes the line."""
    session.update_quantity(product_id, update.quantity)
    return session.cart_snapshot()


@cart_router.delete("/{product_id}", response_model=CartResponse)
def remove_cart_item(product_id: int, session: CartSession = Depends(get_cart_session)):
    session.remove_item(product_id)
    return session.cart_snapshot()


@cart_router.delete("", response_model=CartResponse)
def clear_cart(session: CartSession = Depends(get_cart_session)):
    session.clear()
    return session.cart_snapshot()


@cart_router.post("/sync", response_model=CartResponse)
def sync_cart(payload: CartSyncRequest, session: CartSession = Depends(get_cart_session)):
    session.sync(payload.items)
    return session.cart_snapshot()


# ============================================================================
# CHECKOUT ENDPOINTS
# ============================================================================

@checkout_router.get("", response_model=CheckoutStateOut)
def get_checkout(session: CartSession = Depends(get_cart_session)):
    """Everything the checkout pages render: lines, totals, selections, step and errors."""
    return session.snapshot()


@checkout_router.post("/coupon", response_model=CheckoutStateOut)
def apply_coupon_code(payload: CouponRequest, session: CartSession = Depends(get_cart_session)):
    session.apply_coupon(payload.code)
    return session.snapshot()


@checkout_router.delete("/coupon", response_model=CheckoutStateOut)
def remove_coupon_code(session: CartSession = Depends(get_cart_session)):
    session.remove_coupon()
    return session.snapshot()


@checkout_router.put("/address", response_model=CheckoutStateOut)
def select_address(payload: AddressSelection, session: CartSession = Depends(get_cart_session)):
    session.set_address(payload.address_id)
    return session.snapshot()


@checkout_router.put("/delivery", response_model=CheckoutStateOut)
def select_delivery(payload: DeliverySelection, session: CartSession = Depends(get_cart_session)):
    session.set_delivery_option(payload.delivery_option_id)
    return session.snapshot()


@checkout_router.put("/payment-method", response_model=CheckoutStateOut)
def select_payment_method(payload: PaymentMethodSelection,
                          session: CartSession = Depends(get_cart_session)):
    session.set_payment_method(payload.method)
    return session.snapshot()


@checkout_router.put("/payment", response_model=CheckoutStateOut)
def save_payment_details(payload: dict, session: CartSession = Depends(get_cart_session)):
    """
    Validate and save the details of a payment method.

    The body carries ``method`` plus that method's fields, e.g.
    {"method": "upi", "upi_id": "asha@okhdfc"}. Invalid details answer 422
    with one entry per failing field.
    """
    session.update_payment_data(payload)
    return session.snapshot()


@checkout_router.post("/validate", response_model=ValidationResult)
def validate_checkout(session: CartSession = Depends(get_cart_session)):
    errors = session.validation_errors()
    return {"valid": not errors, "errors": errors}
