"""
SQLAlchemy database models for the Bouquet Bar API.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime, Text, JSON,
    UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Customer account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)  # bcrypt hash (includes salt)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    cart_items = relationship("CartItem", back_populates="user", cascade="all, delete-orphan")
    addresses = relationship("Address", back_populates="user", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="user")
    checkout_state = relationship(
        "CheckoutState", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Product(Base):
    """Flower product sold in the shop."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False)  # roses, orchids, wedding, gifts, seasonal
    image = Column(String(300), nullable=True)
    in_stock = Column(Boolean, default=True, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)

    # Relationships
    cart_items = relationship("CartItem", back_populates="product")

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"


class Coupon(Base):
    """Discount code applied to the order subtotal."""
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(40), unique=True, nullable=False, index=True)  # stored upper-case
    description = Column(String(300), nullable=False)
    discount_type = Column(String(20), nullable=False)  # "percentage" or "fixed"
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_order_amount = Column(Numeric(10, 2), nullable=True)
    max_discount = Column(Numeric(10, 2), nullable=True)
    first_order_only = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Coupon(id={self.id}, code='{self.code}')>"


class DeliveryOption(Base):
    """Shipping tier with a price and an estimated number of days."""
    __tablename__ = "delivery_options"

    id = Column(String(40), primary_key=True)  # e.g. "standard", "express"
    name = Column(String(100), nullable=False)
    description = Column(String(300), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    estimated_days = Column(String(20), nullable=False)  # e.g. "3-5"
    free_above = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<DeliveryOption(id='{self.id}', price={self.price})>"


class CartItem(Base):
    """Cart item model linking users to products with quantities."""
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=utcnow, nullable=False)

    # Unique constraint: one cart item per user-product combination
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_user_product"),
        Index("ix_cart_items_user_id", "user_id"),
    )

    # Relationships
    user = relationship("User", back_populates="cart_items")
    product = relationship("Product", back_populates="cart_items")

    def __repr__(self):
        return f"<CartItem(id={self.id}, user_id={self.user_id}, product_id={self.product_id}, quantity={self.quantity})>"


class Address(Base):
    """Saved shipping address."""
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(120), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    landmark = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(10), nullable=False)
    country = Column(String(100), nullable=False, default="India")
    address_type = Column(String(10), nullable=False, default="Home")  # Home, Office, Other
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="addresses")

    def __repr__(self):
        return f"<Address(id={self.id}, user_id={self.user_id}, city='{self.city}')>"


class CheckoutState(Base):
    """
    Checkout selections for one user: coupon, address, delivery option and
    the sanitized payment summary. Card numbers and CVVs never land here.
    """
    __tablename__ = "checkout_states"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    coupon_code = Column(String(40), nullable=True)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    delivery_option_id = Column(String(40), ForeignKey("delivery_options.id"), nullable=True)
    payment_method = Column(String(20), nullable=True)
    payment_details = Column(JSON, nullable=True)
    payment_validated = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="checkout_state")
    address = relationship("Address")
    delivery_option = relationship("DeliveryOption")

    def __repr__(self):
        return f"<CheckoutState(user_id={self.user_id}, payment_method='{self.payment_method}')>"


class Order(Base):
    """Placed order with its pricing snapshot."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_charge = Column(Numeric(10, 2), nullable=False, default=0)
    payment_charges = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    coupon_code = Column(String(40), nullable=True)
    payment_method = Column(String(20), nullable=False)
    payment_details = Column(JSON, nullable=True)
    payment_status = Column(String(20), nullable=False, default="pending")  # pending, paid, refunded
    payment_reference = Column(String(40), nullable=True)
    delivery_address = Column(Text, nullable=False)
    delivery_option_id = Column(String(40), nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    points_awarded = Column(Integer, nullable=False, default=0)
    estimated_delivery_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    status_updated_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id",
    )

    def __repr__(self):
        return f"<Order(id={self.id}, order_number='{self.order_number}', status='{self.status}')>"


class OrderItem(Base):
    """Line item copied from the cart when the order is placed."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = Column(String(200), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")


class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="status_history")


class PasswordResetOtp(Base):
    """One-time code issued by the forgot-password flow."""
    __tablename__ = "password_reset_otps"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    consumed = Column(Boolean, nullable=False, default=False)
    reset_used = Column(Boolean, nullable=False, default=False)  # the reset token issued for it was spent
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Course(Base):
    """Floral design school course."""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    duration = Column(String(50), nullable=False)
    level = Column(String(30), nullable=False)

    enrollments = relationship("Enrollment", back_populates="course")


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    batch = Column(String(50), nullable=False)
    questions = Column(String(1000), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    course = relationship("Course", back_populates="enrollments")


class NewsletterSubscription(Base):
    """Email captured by the newsletter forms on the landing page."""
    __tablename__ = "newsletter_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class LandingContact(Base):
    """Callback request left on the landing page offer card."""
    __tablename__ = "landing_contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    excerpt = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    image = Column(String(300), nullable=True)
    published_at = Column(DateTime, nullable=False)


class Testimonial(Base):
    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    location = Column(String(120), nullable=True)
    comment = Column(String(1000), nullable=False)
    rating = Column(Integer, nullable=False)
    type = Column(String(10), nullable=False)  # shop or school
    image = Column(String(300), nullable=True)
