"""
Data access for the application.

A single :class:`MongoStore` is created by ``init_db`` and handed to the
services, which never query the documents directly.
"""

import logging
from datetime import datetime, time

from mongoengine.queryset.visitor import Q

from facturahn.models import (
    Company,
    Customer,
    InventoryMovement,
    InventoryOrder,
    Invoice,
    Product,
    SarCai,
    User,
)
from facturahn.utils.helpers import parse_object_id

logger = logging.getLogger(__name__)

UNIVERSAL_CUSTOMER_NAME = "Consumidor Final"


def _in_period(query, start_date, end_date):
    if start_date:
        query = query.filter(date__gte=datetime.combine(start_date, time.min))
    if end_date:
        query = query.filter(date__lte=datetime.combine(end_date, time.max))
    return query


class MongoStore:
    """MongoEngine-backed store."""

    # -- Generic -------------------------------------------------------------

    def save(self, document):
        if hasattr(document, "updated_at"):
            document.updated_at = datetime.utcnow()
        document.save()
        return document

    def delete(self, document) -> None:
        document.delete()

    @staticmethod
    def _get(queryset, object_id):
        oid = parse_object_id(object_id)
        if oid is None:
            return None
        return queryset.filter(id=oid).first()

    # -- Users ---------------------------------------------------------------

    def get_user(self, user_id):
        return self._get(User.objects, user_id)

    def get_user_by_email(self, email: str):
        return User.objects(email=(email or "").strip().lower()).first()

    def list_users(self, company_id, role=None):
        query = User.objects(company_id=company_id)
        if role:
            query = query.filter(role=role)
        return list(query.order_by("full_name"))

    # -- Company -------------------------------------------------------------

    def get_company(self, company_id):
        return self._get(Company.objects, company_id)

    def create_company(self, name: str, **fields) -> Company:
        """Create a company together with its universal customer."""
        company = Company(name=name, **fields)
        company.save()
        Customer(
            company_id=company.id,
            name=UNIVERSAL_CUSTOMER_NAME,
            is_universal=True,
        ).save()
        logger.info("Company created: %s", company.name)
        return company

    def get_active_sar_cai(self, company):
        if not company or not company.current_sar_cai_id:
            return None
        return SarCai.objects(id=company.current_sar_cai_id).first()

    def list_sar_cai(self, company_id):
        return list(SarCai.objects(company_id=company_id).order_by("-created_at"))

    def register_sar_cai(self, company, cai, limit_date, range_invoice1, range_invoice2):
        """Insert a new CAI and make it the company's active one."""
        sar_cai = SarCai(
            company_id=company.id,
            cai=cai,
            limit_date=limit_date,
            range_invoice1=range_invoice1,
            range_invoice2=range_invoice2,
        )
        sar_cai.save()
        company.current_sar_cai_id = sar_cai.id
        self.save(company)
        return sar_cai

    # -- Customers -----------------------------------------------------------

    def list_customers(self, company_id, search=None):
        query = Customer.objects(company_id=company_id)
        if search:
            query = query.filter(
                Q(name__icontains=search) | Q(rtn__icontains=search) | Q(email__icontains=search)
            )
        return list(query.order_by("name"))

    def get_customer(self, company_id, customer_id):
        return self._get(Customer.objects(company_id=company_id), customer_id)

    # -- Products ------------------------------------------------------------

    def list_products(self, company_id, search=None):
        query = Product.objects(company_id=company_id)
        if search:
            query = query.filter(Q(description__icontains=search) | Q(sku__icontains=search))
        return list(query.order_by("description"))

    def get_product(self, company_id, product_id):
        return self._get(Product.objects(company_id=company_id), product_id)

    def products_by_id(self, company_id, product_ids) -> dict:
        oids = [oid for oid in (parse_object_id(p) for p in product_ids) if oid]
        if not oids:
            return {}
        products = Product.objects(company_id=company_id, id__in=oids)
        return {str(p.id): p for p in products}

    def adjust_stock(self, product_id, delta: float) -> None:
        Product.objects(id=parse_object_id(product_id)).update_one(
            inc__quantity_in_stock=delta, set__updated_at=datetime.utcnow()
        )

    def create_inventory_order(self, company_id, order_type, reason, rows, user_id=None):
        order = InventoryOrder(
            company_id=company_id,
            type=order_type,
            reason_description=reason,
            update_products=[
                InventoryMovement(
                    product_id=parse_object_id(row["product_id"]),
                    quantity_delta=row["quantity_delta"],
                )
                for row in rows
            ],
            user_id=user_id,
        )
        order.save()
        return order

    # -- Invoices ------------------------------------------------------------

    def get_invoice(self, company_id, invoice_id):
        return self._get(Invoice.objects(company_id=company_id), invoice_id)

    def get_invoices(self, company_id, invoice_ids):
        oids = [oid for oid in (parse_object_id(i) for i in invoice_ids) if oid]
        return list(Invoice.objects(company_id=company_id, id__in=oids))

    def search_invoices(self, company_id, search=None, start_date=None, end_date=None, statuses=None):
        query = Invoice.objects(company_id=company_id)
        if search:
            query = query.filter(
                Q(invoice_number__icontains=search)
                | Q(proforma_number__icontains=search)
                | Q(customer__name__icontains=search)
                | Q(items__description__icontains=search)
            )
        query = _in_period(query, start_date, end_date)
        if statuses:
            query = query.filter(status__in=list(statuses))
        return query.order_by("-date")

    def all_invoices(self, company_id):
        return list(Invoice.objects(company_id=company_id))

    def last_invoice_number(self, company_id):
        """Number of the most recent fiscal invoice, cancelled ones included."""
        last = (
            Invoice.objects(company_id=company_id, is_proforma=False)
            .order_by("-created_at", "-invoice_number")
            .only("invoice_number")
            .first()
        )
        return last.invoice_number if last else None

    def last_proforma_number(self, company_id):
        last = (
            Invoice.objects(company_id=company_id, is_proforma=True)
            .order_by("-proforma_number")
            .only("proforma_number")
            .first()
        )
        return last.proforma_number if last else None

    def ensure_indexes(self) -> None:
        for document in (User, Company, SarCai, Customer, Product, InventoryOrder, Invoice):
            document.ensure_indexes()

    # -- Reports -------------------------------------------------------------

    def fiscal_invoices(self, company_id, start_date=None, end_date=None, statuses=None, customer_id=None):
        """Fiscal invoices in a date range; proformas are quotes and never count as sales."""
        query = Invoice.objects(company_id=company_id, is_proforma=False)
        query = _in_period(query, start_date, end_date)
        if statuses:
            query = query.filter(status__in=list(statuses))
        if customer_id is not None:
            query = query.filter(customer_id=customer_id)
        return query

    def invoice_status_summary(self, company_id, start_date=None, end_date=None) -> list:
        pipeline = [
            {"$group": {"_id": "$status", "count": {"$sum": 1}, "total": {"$sum": "$total"}}},
            {"$sort": {"_id": 1}},
        ]
        return list(self.fiscal_invoices(company_id, start_date, end_date).aggregate(pipeline))

    def sales_by_customer(self, company_id, start_date=None, end_date=None, limit=None) -> list:
        """Invoice count and sales per customer, best customers first."""
        pipeline = [
            {"$match": {"status": {"$ne": "cancelled"}}},
            {
                "$group": {
                    "_id": "$customer_id",
                    "name": {"$first": "$customer.name"},
                    "invoice_count": {"$sum": 1},
                    "total_sales": {"$sum": "$total"},
                }
            },
            {"$sort": {"total_sales": -1}},
        ]
        if limit:
            pipeline.append({"$limit": limit})
        return list(self.fiscal_invoices(company_id, start_date, end_date).aggregate(pipeline))

    def sales_by_product(self, company_id, start_date=None, end_date=None, customer_id=None, limit=None) -> list:
        """Quantity sold and line totals per catalog product, before tax."""
        pipeline = [
            {"$match": {"status": {"$ne": "cancelled"}}},
            {"$unwind": "$items"},
            {"$match": {"items.product_id": {"$ne": None}}},
            {
                "$group": {
                    "_id": "$items.product_id",
                    "description": {"$first": "$items.description"},
                    "is_service": {"$first": "$items.is_service"},
                    "quantity_sold": {"$sum": "$items.quantity"},
                    "total_sales": {
                        "$sum": {
                            "$subtract": [
                                {"$multiply": ["$items.quantity", "$items.unit_cost"]},
                                "$items.discount",
                            ]
                        }
                    },
                }
            },
            {"$sort": {"quantity_sold": -1}},
        ]
        if limit:
            pipeline.append({"$limit": limit})
        query = self.fiscal_invoices(company_id, start_date, end_date, customer_id=customer_id)
        return list(query.aggregate(pipeline))

    def stock_levels(self, company_id) -> list:
        """Physical products ordered by stock, lowest first."""
        return list(
            Product.objects(company_id=company_id, is_service=False).order_by("quantity_in_stock", "description")
        )
