"""
Landing page endpoints: newsletter sign-up, offer-card callback requests,
blog posts and customer testimonials.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models import BlogPost, LandingContact, NewsletterSubscription, Testimonial
from schemas import (
    BlogPost as BlogPostOut, LandingContactRequest, MessageResponse, NewsletterRequest,
    Testimonial as TestimonialOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["landing"])


@router.post("/landing/email", response_model=MessageResponse, status_code=201)
def subscribe(payload: NewsletterRequest, db: Session = Depends(get_db)):
    """
    Add an email to the newsletter list.

    Raises:
    - 400 if the email is already subscribed
    """
    email = payload.email.lower()
    if db.query(NewsletterSubscription).filter(NewsletterSubscription.email == email).first():
        raise HTTPException(status_code=400, detail="This email is already subscribed")

    db.add(NewsletterSubscription(email=email))
    try:
        db.commit()
    except IntegrityError:
        # Concurrent sign-up for the same address
        db.rollback()
        raise HTTPException(status_code=400, detail="This email is already subscribed")
    logger.info("Newsletter subscription added")
    return MessageResponse(message="Thank you for subscribing!")


@router.post("/landing/contact", response_model=MessageResponse, status_code=201)
def request_callback(payload: LandingContactRequest, db: Session = Depends(get_db)):
    db.add(LandingContact(name=payload.name, phone=payload.phone, email=payload.email.lower()))
    db.commit()
    logger.info("Landing page callback requested by %s", payload.name)
    return MessageResponse(message="Thanks! Our team will call you shortly.")


@router.get("/blog", response_model=List[BlogPostOut])
def list_blog_posts(
    category: Optional[str] = Query(None, description="Filter by post category"),
    db: Session = Depends(get_db),
):
    """Published posts, newest first."""
    query = db.query(BlogPost)
    if category:
        query = query.filter(BlogPost.category == category)
    return query.order_by(BlogPost.published_at.desc(), BlogPost.id.desc()).all()


@router.get("/testimonials", response_model=List[TestimonialOut])
def list_testimonials(
    type: Optional[str] = Query(None, pattern="^(shop|school)$", description="shop or school"),
    db: Session = Depends(get_db),
):
    query = db.query(Testimonial)
    if type:
        query = query.filter(Testimonial.type == type)
    return query.order_by(Testimonial.id).all()
