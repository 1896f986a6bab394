"""
Sample data loaded into an empty database: flowers, coupons, delivery
options and school courses.
"""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from models import BlogPost, Coupon, Course, DeliveryOption, Product, Testimonial

logger = logging.getLogger(__name__)

FLOWER_CATEGORIES = [
    {"id": "all", "label": "All"},
    {"id": "roses", "label": "Roses"},
    {"id": "orchids", "label": "Orchids"},
    {"id": "wedding", "label": "Wedding"},
    {"id": "gifts", "label": "Gifts"},
    {"id": "seasonal", "label": "Seasonal"},
]

BATCH_OPTIONS = {
    "march-15-morning": "March 15, 2024 - Morning",
    "march-20-evening": "March 20, 2024 - Evening",
    "march-25-weekend": "March 25, 2024 - Weekend",
}

PRODUCTS = [
    {"name": "Red Rose Bouquet", "description": "Twelve long-stem red roses wrapped in kraft paper",
     "price": Decimal("899.00"), "category": "roses", "in_stock": True, "featured": True},
    {"name": "Pink Orchid Arrangement", "description": "Phalaenopsis orchids in a ceramic pot",
     "price": Decimal("1499.00"), "category": "orchids", "in_stock": True, "featured": True},
    {"name": "Bridal Bouquet", "description": "White roses, lilies and baby's breath for the big day",
     "price": Decimal("4999.00"), "category": "wedding", "in_stock": True, "featured": False},
    {"name": "Sunflower Gift Box", "description": "Sunflowers and chocolates in a keepsake box",
     "price": Decimal("1299.00"), "category": "gifts", "in_stock": True, "featured": False},
    {"name": "Seasonal Tulip Bunch", "description": "Imported tulips, available while the season lasts",
     "price": Decimal("999.00"), "category": "seasonal", "in_stock": False, "featured": False},
    {"name": "White Lily Vase", "description": "Fragrant white lilies in a glass vase",
     "price": Decimal("1199.00"), "category": "gifts", "in_stock": True, "featured": False},
    {"name": "Mixed Roses Basket", "description": "Red, pink and yellow roses in a cane basket",
     "price": Decimal("1899.00"), "category": "roses", "in_stock": True, "featured": True},
    {"name": "Orchid Table Centerpiece", "description": "Low purple orchid centerpiece for events",
     "price": Decimal("2499.00"), "category": "orchids", "in_stock": True, "featured": False},
]

COUPONS = [
    {"code": "FIRSTBLOOM", "description": "20% OFF on First Order!", "discount_type": "percentage",
     "discount_value": Decimal("20"), "first_order_only": True},
    {"code": "FLAT200", "description": "₹200 off on orders above ₹1,500", "discount_type": "fixed",
     "discount_value": Decimal("200"), "min_order_amount": Decimal("1500")},
    {"code": "BLOOM10", "description": "10% off, up to ₹300", "discount_type": "percentage",
     "discount_value": Decimal("10"), "max_discount": Decimal("300")},
    {"code": "SPRING25", "description": "Spring sale (ended)", "discount_type": "percentage",
     "discount_value": Decimal("25"), "is_active": False},
]

DELIVERY_OPTIONS = [
    {"id": "standard", "name": "Standard Delivery", "description": "Delivered within Bengaluru",
     "price": Decimal("50.00"), "estimated_days": "3-5", "free_above": Decimal("1999.00")},
    {"id": "express", "name": "Express Delivery", "description": "Priority dispatch",
     "price": Decimal("150.00"), "estimated_days": "1-2"},
    {"id": "same-day", "name": "Same Day Delivery", "description": "Order before 2 PM",
     "price": Decimal("250.00"), "estimated_days": "0"},
]

COURSES = [
    {"title": "Floral Design Foundations", "description": "Colour theory, tools and hand-tied bouquets",
     "price": Decimal("4999.00"), "duration": "4 weeks", "level": "Beginner"},
    {"title": "Wedding & Event Floristry", "description": "Bridal work, stage decor and large installations",
     "price": Decimal("14999.00"), "duration": "8 weeks", "level": "Advanced"},
    {"title": "Flower Business Masterclass", "description": "Sourcing, pricing and running a flower studio",
     "price": Decimal("7999.00"), "duration": "2 weeks", "level": "Intermediate"},
]

BLOG_POSTS = [
    {"title": "How to Keep Cut Roses Fresh for a Week",
     "excerpt": "Trim, hydrate and keep them cool: a florist's routine for longer-lasting roses.",
     "content": "Cut the stems at an angle under running water, strip leaves below the waterline, "
                "change the water every two days and keep the vase away from ripening fruit.",
     "category": "Care Tips", "published_at": datetime(2024, 3, 2)},
    {"title": "Choosing Wedding Flowers by Season",
     "excerpt": "Peonies in spring, dahlias in autumn: plan your bridal palette around what blooms.",
     "content": "Seasonal flowers cost less and look their best. Start with the bouquet, then let "
                "the stage decor and table centerpieces echo its colours.",
     "category": "Weddings", "published_at": datetime(2024, 2, 18)},
    {"title": "Inside Our Floral Design Foundations Course",
     "excerpt": "Four weeks of colour theory, tools and hand-tied bouquets at the Bouquet Bar school.",
     "content": "Students learn conditioning, spiral technique and wrapping, and leave with a "
                "portfolio of six arrangements.",
     "category": "School", "published_at": datetime(2024, 1, 27)},
]

TESTIMONIALS = [
    {"name": "Ananya Iyer", "location": "Koramangala, Bengaluru", "rating": 5, "type": "shop",
     "comment": "The red rose bouquet arrived on time for our anniversary and stayed fresh for days."},
    {"name": "Rohit Menon", "location": "Whitefield, Bengaluru", "rating": 5, "type": "shop",
     "comment": "Same-day delivery saved my mother's birthday. Beautiful orchids."},
    {"name": "Kavya Reddy", "location": "Hyderabad", "rating": 4, "type": "school",
     "comment": "The foundations course gave me the confidence to start taking small orders."},
]

SEED_DATA = [
    (Product, PRODUCTS),
    (Coupon, COUPONS),
    (DeliveryOption, DELIVERY_OPTIONS),
    (Course, COURSES),
    (BlogPost, BLOG_POSTS),
    (Testimonial, TESTIMONIALS),
]


def seed_if_empty(db: Session) -> None:
    """Seed each empty table with its sample rows."""
    for model, rows in SEED_DATA:
        if db.query(model).count() > 0:
            continue
        db.add_all(model(**row) for row in rows)
        logger.info("Seeded %d rows into %s", len(rows), model.__tablename__)
    db.commit()
