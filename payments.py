"""
Payment method validation.

Each payment method carries its own field set and rules. The request body is a
tagged union keyed on ``method``; Pydantic picks the matching model and runs
only that model's validators.

No real gateway is contacted: a validated payment is reduced to a storable
summary (see ``sanitize_payment``) and the capture itself is simulated when the
order is placed.
"""
import re
from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator, model_validator

COD_CHARGE = Decimal("50.00")

# Supported banks for net banking
INDIAN_BANKS = {
    "sbi": "State Bank of India",
    "hdfc": "HDFC Bank",
    "icici": "ICICI Bank",
    "axis": "Axis Bank",
    "kotak": "Kotak Mahindra Bank",
    "indusind": "IndusInd Bank",
    "yes": "Yes Bank",
    "pnb": "Punjab National Bank",
    "bob": "Bank of Baroda",
    "canara": "Canara Bank",
    "union": "Union Bank of India",
    "indian": "Indian Bank",
}

PAYMENT_METHODS = {
    "card": {"title": "Credit/Debit Card", "description": "Pay securely with your card", "fee": Decimal("0")},
    "upi": {"title": "UPI", "description": "Pay instantly with UPI", "fee": Decimal("0")},
    "netbanking": {"title": "Net Banking", "description": "Pay through your bank", "fee": Decimal("0")},
    "cod": {"title": "Cash on Delivery", "description": "Pay when your order arrives", "fee": COD_CHARGE},
    "qrcode": {"title": "QR Code", "description": "Scan QR code to pay instantly", "fee": Decimal("0")},
}

PaymentMethod = Literal["card", "upi", "netbanking", "cod", "qrcode"]

HOLDER_NAME_RE = re.compile(r"[a-zA-Z ]+")
CARD_NUMBER_RE = re.compile(r"[0-9]{16}")
EXPIRY_MONTH_RE = re.compile(r"0[1-9]|1[0-2]")
EXPIRY_YEAR_RE = re.compile(r"[0-9]{2}")
CVV_RE = re.compile(r"[0-9]{3,4}")
UPI_ID_RE = re.compile(r"[a-zA-Z0-9.\-_]{2,256}@[a-zA-Z]{2,64}")
UPI_MASK_RE = re.compile(r"(.{2})(.*)(@.*)")


def luhn_valid(number: str) -> bool:
    """Return True if a string of digits passes the Luhn checksum."""
    if not number or not (number.isascii() and number.isdigit()):
        return False
    total = 0
    for position, char in enumerate(reversed(number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _today() -> date:
    return date.today()


# ============================================================================
# PAYMENT MODELS
# ============================================================================

class CardPayment(BaseModel):
    method: Literal["card"] = "card"
    holder_name: str
    number: str
    expiry_month: str
    expiry_year: str
    cvv: str

    @field_validator("holder_name")
    @classmethod
    def check_holder_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Cardholder name must be at least 2 characters")
        if not HOLDER_NAME_RE.fullmatch(value):
            raise ValueError("Name should only contain letters and spaces")
        return value

    @field_validator("number", mode="before")
    @classmethod
    def check_number(cls, value):
        # Accept the "1234 5678 9012 3456" form the checkout page displays
        if isinstance(value, str):
            value = re.sub(r"[\s-]", "", value)
        if not isinstance(value, str) or not CARD_NUMBER_RE.fullmatch(value):
            raise ValueError("Card number must be 16 digits")
        if not luhn_valid(value):
            raise ValueError("Invalid card number")
        return value

    @field_validator("expiry_month")
    @classmethod
    def check_expiry_month(cls, value: str) -> str:
        if not EXPIRY_MONTH_RE.fullmatch(value):
            raise ValueError("Invalid month format (MM)")
        return value

    @field_validator("expiry_year")
    @classmethod
    def check_expiry_year(cls, value: str) -> str:
        if not EXPIRY_YEAR_RE.fullmatch(value):
            raise ValueError("Invalid year format (YY)")
        year = int(value) + 2000
        current_year = _today().year
        if year < current_year or year > current_year + 10:
            raise ValueError("Card has expired or invalid year")
        return value

    @field_validator("cvv")
    @classmethod
    def check_cvv(cls, value: str) -> str:
        if not CVV_RE.fullmatch(value):
            raise ValueError("CVV must be 3 or 4 digits")
        return value

    @model_validator(mode="after")
    def check_not_expired(self):
        today = _today()
        if int(self.expiry_year) + 2000 == today.year and int(self.expiry_month) < today.month:
            raise ValueError("Card has expired")
        return self


class UpiPayment(BaseModel):
    method: Literal["upi"] = "upi"
    upi_id: str

    @field_validator("upi_id")
    @classmethod
    def check_upi_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("UPI ID is required")
        if not UPI_ID_RE.fullmatch(value):
            raise ValueError("Invalid UPI ID format (e.g., user@paytm)")
        return value


class NetbankingPayment(BaseModel):
    method: Literal["netbanking"] = "netbanking"
    bank_name: str
    account_type: Literal["savings", "current"] = "savings"

    @field_validator("bank_name")
    @classmethod
    def check_bank(cls, value: str) -> str:
        if not value:
            raise ValueError("Please select a bank")
        if value not in INDIAN_BANKS:
            raise ValueError("Unsupported bank")
        return value


class CodPayment(BaseModel):
    method: Literal["cod"] = "cod"
    confirmed: bool = Field(default=False, validate_default=True)

    @field_validator("confirmed")
    @classmethod
    def check_confirmed(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Please confirm COD payment")
        return value


class QrCodePayment(BaseModel):
    method: Literal["qrcode"] = "qrcode"
    confirmed: bool = Field(default=False, validate_default=True)
    amount: Decimal = Field(..., ge=1)

    @field_validator("confirmed")
    @classmethod
    def check_confirmed(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Please confirm QR Code payment")
        return value


PaymentData = Annotated[
    Union[CardPayment, UpiPayment, NetbankingPayment, CodPayment, QrCodePayment],
    Field(discriminator="method"),
]

payment_adapter = TypeAdapter(PaymentData)


# ============================================================================
# HELPERS
# ============================================================================

def parse_payment(data: dict):
    """Validate a raw payload into the matching payment model (raises ValidationError)."""
    return payment_adapter.validate_python(data)


def validate_payment(data: dict) -> list[str]:
    """Return the validation messages for a raw payload; empty when valid."""
    try:
        parse_payment(data)
    except ValidationError as exc:
        messages = []
        for error in exc.errors():
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            messages.append(message)
        return messages
    return []


def payment_charge(method: Optional[str]) -> Decimal:
    """Surcharge added to the order total for a payment method."""
    if method is None or method not in PAYMENT_METHODS:
        return Decimal("0.00")
    return PAYMENT_METHODS[method]["fee"].quantize(Decimal("0.01"))


def sanitize_payment(payment) -> dict:
    """
    Reduce a validated payment to what may be stored with the checkout state
    and the order. Full card numbers and CVVs are dropped.
    """
    if isinstance(payment, CardPayment):
        return {
            "holder_name": payment.holder_name,
            "last4": payment.number[-4:],
            "expiry_month": payment.expiry_month,
            "expiry_year": payment.expiry_year,
        }
    if isinstance(payment, UpiPayment):
        return {"upi_id": payment.upi_id}
    if isinstance(payment, NetbankingPayment):
        return {"bank_name": payment.bank_name, "account_type": payment.account_type}
    if isinstance(payment, CodPayment):
        return {"confirmed": payment.confirmed}
    if isinstance(payment, QrCodePayment):
        return {"confirmed": payment.confirmed, "amount": str(payment.amount.quantize(Decimal("0.01")))}
    raise TypeError(f"Unknown payment type: {type(payment).__name__}")


def method_display_name(method: Optional[str]) -> str:
    names = {
        "card": "Credit/Debit Card",
        "upi": "UPI Payment",
        "netbanking": "Net Banking",
        "cod": "Cash on Delivery",
        "qrcode": "QR Code Payment",
    }
    return names.get(method, "Not Selected")


def mask_upi_id(upi_id: str) -> str:
    return UPI_MASK_RE.sub(r"\1***\3", upi_id, count=1)


def format_inr(amount) -> str:
    """Format an amount the way the storefront shows rupees, e.g. ₹1,234.50."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    whole, _, paise = f"{value:.2f}".partition(".")
    sign = ""
    if whole.startswith("-"):
        sign, whole = "-", whole[1:]
    # Indian digit grouping: last three digits, then pairs
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        whole = ",".join(pairs + [tail])
    text = f"{sign}₹{whole}"
    if paise != "00":
        text += f".{paise}"
    return text


def display_details(method: Optional[str], details: Optional[dict]) -> str:
    """Masked, human-readable payment summary for the order review."""
    if not method:
        return "No payment method selected"
    details = details or {}

    if method == "card":
        if details.get("last4"):
            return f"Card ending in {details['last4']}"
        return "Credit/Debit Card"
    if method == "upi":
        if details.get("upi_id"):
            return mask_upi_id(details["upi_id"])
        return "UPI Payment"
    if method == "netbanking":
        if details.get("bank_name"):
            bank = INDIAN_BANKS.get(details["bank_name"], details["bank_name"])
            return f"{bank} - {details.get('account_type', 'savings')}"
        return "Net Banking"
    if method == "cod":
        return "Cash on Delivery"
    if method == "qrcode":
        if details.get("confirmed"):
            amount = details.get("amount")
            return f"QR Code Payment - {format_inr(amount) if amount else 'N/A'}"
        return "QR Code Payment"
    return "Payment method selected"
