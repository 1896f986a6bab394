"""
Address book endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from models import Address, CheckoutState, User
from schemas import AddressIn, AddressOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/addresses", tags=["addresses"])


def _user_address(db: Session, user: User, address_id: int) -> Address:
    address = (
        db.query(Address)
        .filter(Address.id == address_id, Address.user_id == user.id)
        .first()
    )
    if address is None:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


def _make_default(db: Session, user: User, address: Address):
    """Exactly one default address per user."""
    db.query(Address).filter(
        Address.user_id == user.id,
        Address.id != address.id,
        Address.is_default.is_(True),
    ).update({"is_default": False}, synchronize_session=False)
    address.is_default = True


@router.get("", response_model=List[AddressOut])
def list_addresses(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Saved addresses, default first."""
    return (
        db.query(Address)
        .filter(Address.user_id == user.id)
        .order_by(Address.is_default.desc(), Address.id)
        .all()
    )


@router.post("", response_model=AddressOut, status_code=201)
def create_address(payload: AddressIn, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    has_addresses = db.query(Address.id).filter(Address.user_id == user.id).first() is not None
    address = Address(user_id=user.id, **payload.model_dump(exclude={"is_default"}))
    db.add(address)
    db.flush()
    if payload.is_default or not has_addresses:
        _make_default(db, user, address)
    db.commit()
    db.refresh(address)
    logger.info("Address %s added for user_id=%s", address.id, user.id)
    return address


@router.put("/{address_id}", response_model=AddressOut)
def update_address(address_id: int, payload: AddressIn, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    address = _user_address(db, user, address_id)
    for field, value in payload.model_dump(exclude={"is_default"}).items():
        setattr(address, field, value)
    # Unsetting happens by choosing another default, never by clearing this one
    if payload.is_default:
        _make_default(db, user, address)
    db.commit()
    db.refresh(address)
    return address


@router.post("/{address_id}/default", response_model=AddressOut)
def set_default_address(address_id: int, user: User = Depends(get_current_user),
                        db: Session = Depends(get_db)):
    address = _user_address(db, user, address_id)
    _make_default(db, user, address)
    db.commit()
    db.refresh(address)
    return address


@router.delete("/{address_id}", status_code=204)
def delete_address(address_id: int, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    address = _user_address(db, user, address_id)
    was_default = address.is_default

    db.query(CheckoutState).filter(
        CheckoutState.user_id == user.id,
        CheckoutState.address_id == address.id,
    ).update({"address_id": None}, synchronize_session=False)
    db.delete(address)
    db.flush()

    if was_default:
        oldest = (
            db.query(Address)
            .filter(Address.user_id == user.id)
            .order_by(Address.id)
            .first()
        )
        if oldest is not None:
            oldest.is_default = True
    db.commit()
    return Response(status_code=204)
