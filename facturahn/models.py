"""
MongoEngine document models.

All collections are defined here. Connect to MongoDB via
``mongoengine.connect()`` in the application factory.
"""

from datetime import datetime

import mongoengine as me
from werkzeug.security import generate_password_hash, check_password_hash

from facturahn.services.fiscal_engine import LineItem, RangeAuthorization


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(me.Document):
    """Application user — company admin or member."""

    meta = {"collection": "users", "indexes": ["company_id"]}

    full_name = me.StringField(required=True, max_length=100)
    email = me.StringField(required=True, unique=True, max_length=120)
    role = me.StringField(default="member", required=True, max_length=20)
    company_id = me.ObjectIdField(required=True)
    password_hash = me.StringField(max_length=256)

    # -- Authentication helpers ------------------------------------------------

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if self.password_hash:
            return check_password_hash(self.password_hash, password)
        return False

    def __repr__(self) -> str:
        return f"<User {self.email}>"


# ---------------------------------------------------------------------------
# Company and its fiscal authorizations
# ---------------------------------------------------------------------------
class Company(me.Document):
    """The issuing business. Points at its currently active CAI."""

    meta = {"collection": "companies"}

    name = me.StringField(required=True, max_length=150)
    rtn = me.StringField(max_length=20)
    address0 = me.StringField(max_length=255)
    address1 = me.StringField(max_length=255)
    address2 = me.StringField(max_length=255)
    phone = me.StringField(max_length=30)
    email = me.StringField(max_length=120)
    current_sar_cai_id = me.ObjectIdField()
    created_at = me.DateTimeField(default=datetime.utcnow)
    updated_at = me.DateTimeField(default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Company {self.name}>"


class SarCai(me.Document):
    """A CAI issued by the SAR. Superseded by newer records, never edited."""

    meta = {
        "collection": "sar_cai",
        "indexes": ["company_id"],
        "ordering": ["-created_at"],
    }

    company_id = me.ObjectIdField(required=True)
    cai = me.StringField(required=True, max_length=40)
    limit_date = me.DateField(required=True)
    range_invoice1 = me.StringField(required=True, max_length=19)
    range_invoice2 = me.StringField(required=True, max_length=19)
    created_at = me.DateTimeField(default=datetime.utcnow)

    def as_authorization(self) -> RangeAuthorization:
        return RangeAuthorization(
            range_start=self.range_invoice1,
            range_end=self.range_invoice2,
            expiration_date=self.limit_date,
            cai=self.cai,
        )

    def __repr__(self) -> str:
        return f"<SarCai {self.cai}>"


# ---------------------------------------------------------------------------
# Customer
# ---------------------------------------------------------------------------
class Contact(me.EmbeddedDocument):
    name = me.StringField(max_length=100)
    position = me.StringField(max_length=80)
    email = me.StringField(max_length=120)
    phone = me.StringField(max_length=30)


class Customer(me.Document):
    """A customer of the company. The universal one is "Consumidor Final"."""

    meta = {"collection": "customers", "indexes": ["company_id", "name"]}

    company_id = me.ObjectIdField(required=True)
    name = me.StringField(required=True, max_length=150)
    rtn = me.StringField(max_length=20)
    email = me.StringField(max_length=120)
    is_universal = me.BooleanField(default=False)
    contacts = me.EmbeddedDocumentListField(Contact)
    created_at = me.DateTimeField(default=datetime.utcnow)
    updated_at = me.DateTimeField(default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Customer {self.name}>"


# ---------------------------------------------------------------------------
# Products and inventory
# ---------------------------------------------------------------------------
class Product(me.Document):
    """A product or service; services do not track stock."""

    meta = {"collection": "products", "indexes": ["company_id", "sku"]}

    company_id = me.ObjectIdField(required=True)
    sku = me.StringField(max_length=50)
    description = me.StringField(required=True, max_length=200)
    unit_cost = me.FloatField(required=True, min_value=0)
    is_service = me.BooleanField(default=False)
    quantity_in_stock = me.FloatField(default=0)
    created_at = me.DateTimeField(default=datetime.utcnow)
    updated_at = me.DateTimeField(default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Product {self.sku or self.description[:30]}>"


class InventoryMovement(me.EmbeddedDocument):
    product_id = me.ObjectIdField(required=True)
    quantity_delta = me.FloatField(required=True)


class InventoryOrder(me.Document):
    """Manual stock adjustment (ADD or DELETE) with its reason."""

    meta = {"collection": "inventory_orders", "indexes": ["company_id"]}

    company_id = me.ObjectIdField(required=True)
    type = me.StringField(required=True, choices=("ADD", "DELETE"))
    reason_description = me.StringField(required=True, max_length=255)
    update_products = me.EmbeddedDocumentListField(InventoryMovement)
    user_id = me.ObjectIdField()
    created_at = me.DateTimeField(default=datetime.utcnow)


# ---------------------------------------------------------------------------
# InvoiceItem (embedded inside Invoice)
# ---------------------------------------------------------------------------
class InvoiceItem(me.EmbeddedDocument):
    """A single line item on an invoice."""

    product_id = me.ObjectIdField()
    description = me.StringField(required=True, max_length=200)
    quantity = me.FloatField(required=True, min_value=0)
    unit_cost = me.FloatField(required=True, min_value=0)
    discount = me.FloatField(default=0.0, min_value=0)
    is_service = me.BooleanField(default=False)

    @property
    def total(self) -> float:
        return self.quantity * self.unit_cost - self.discount

    def as_line_item(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            discount=self.discount or 0.0,
            is_service=self.is_service,
            product_id=str(self.product_id) if self.product_id else None,
        )

    def __repr__(self) -> str:
        return f"<InvoiceItem {self.description[:30]}>"


class CustomerSnapshot(me.EmbeddedDocument):
    """Customer data as printed on the invoice."""

    name = me.StringField(max_length=150)
    rtn = me.StringField(max_length=20)
    email = me.StringField(max_length=120)


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------
class Invoice(me.Document):
    """Fiscal or proforma invoice with embedded line items."""

    meta = {
        "collection": "invoices",
        "indexes": [
            "company_id",
            "date",
            {
                "fields": ["company_id", "invoice_number"],
                "unique": True,
                "partialFilterExpression": {"is_proforma": False},
            },
        ],
        # Created explicitly at start-up when ENSURE_INDEXES is set.
        "auto_create_index": False,
    }

    company_id = me.ObjectIdField(required=True)
    customer_id = me.ObjectIdField()
    customer = me.EmbeddedDocumentField(CustomerSnapshot)
    invoice_number = me.StringField(max_length=19)
    proforma_number = me.StringField(max_length=20)
    is_proforma = me.BooleanField(default=False)
    is_exempt = me.BooleanField(default=False)
    cai = me.StringField(max_length=40)
    date = me.DateTimeField(default=datetime.utcnow)

    subtotal = me.FloatField(default=0.0)
    tax_exonerado = me.FloatField(default=0.0)
    tax_exento = me.FloatField(default=0.0)
    tax_gravado_15 = me.FloatField(default=0.0)
    tax_gravado_18 = me.FloatField(default=0.0)
    tax = me.FloatField(default=0.0)
    tax_18 = me.FloatField(default=0.0)
    total = me.FloatField(default=0.0)
    numbers_to_letters = me.StringField(max_length=255)

    status = me.StringField(default="pending", required=True, max_length=20)
    delivery_status = me.StringField(default="pending", max_length=20)
    delivered_at = me.DateTimeField()
    user_id = me.ObjectIdField()
    created_at = me.DateTimeField(default=datetime.utcnow)
    updated_at = me.DateTimeField(default=datetime.utcnow)

    items = me.EmbeddedDocumentListField(InvoiceItem)

    def line_items(self) -> list:
        return [item.as_line_item() for item in self.items]

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number or self.proforma_number}>"
