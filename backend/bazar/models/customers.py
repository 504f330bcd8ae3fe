from __future__ import annotations

from ..extensions import db
from bazar.money_utils import to_number
from bazar.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data with two independent debts.

    CURRENCIES: debt_iqd and current_balance move together (IQD sales and
    IQD payments); debt_usd moves on its own (motorcycle sales and USD
    payments). The two are never converted into each other.

    current_balance: positive = customer owes, negative = store owes credit.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    name_ar = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    city = db.Column(db.String(128), nullable=True)

    # Numeric-range customer code, e.g. "100042"
    sku = db.Column(db.String(32), nullable=False, unique=True)

    debt_iqd = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    debt_usd = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    current_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    last_payment_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Reminder preferences (days between reminders, channel)
    notification_days = db.Column(db.Integer, nullable=True)
    notification_type = db.Column(db.String(32), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_ar": self.name_ar,
            "phone": self.phone,
            "city": self.city,
            "sku": self.sku,
            "debt_iqd": to_number(self.debt_iqd),
            "debt_usd": to_number(self.debt_usd),
            "current_balance": to_number(self.current_balance),
            "last_payment_date": to_utc_z(self.last_payment_date),
            "notification_days": self.notification_days,
            "notification_type": self.notification_type,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CustomerBalance(db.Model):
    """
    Append-only history of customer balance changes.

    amount is the signed delta (positive: customer owes more, negative:
    payment or credit). balance is the running figure after the delta in
    the row's currency: current_balance for IQD, debt_usd for USD.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "customer_balances"
    __table_args__ = (
        db.Index("ix_customer_balances_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    currency = db.Column(db.String(3), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    balance = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("balance_history", lazy=True))

    @property
    def entry_type(self) -> str:
        # Overpaid sales post negative rows too; the document link decides first
        if self.invoice_id:
            return "invoice"
        if self.sale_id:
            return "sale"
        if self.amount < 0:
            return "payment"
        return "adjustment"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "currency": self.currency,
            "amount": to_number(self.amount),
            "balance": to_number(self.balance),
            "description": self.description,
            "type": self.entry_type,
            "sale_id": self.sale_id,
            "invoice_id": self.invoice_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
