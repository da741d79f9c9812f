from shopbill.models.business import Business
from shopbill.models.shop import Shop
from shopbill.models.customer import Customer
from shopbill.models.product import Product
from shopbill.models.invoice import Invoice, InvoiceItem, InvoiceStatus, TaxType
from shopbill.models.idempotency import IdempotencyKey

__all__ = [
    "Business", "Shop", "Customer", "Product",
    "Invoice", "InvoiceItem", "InvoiceStatus", "TaxType", "IdempotencyKey",
]
