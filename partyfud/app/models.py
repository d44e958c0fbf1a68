from __future__ import annotations

from datetime import datetime
from sqlalchemy import UniqueConstraint, Index

from partyfud.app.extensions import db


package_occasions = db.Table(
    "package_occasions",
    db.Column("package_id", db.Integer, db.ForeignKey("packages.id"), primary_key=True),
    db.Column("occasion_id", db.Integer, db.ForeignKey("occasions.id"), primary_key=True),
)

caterer_cuisines = db.Table(
    "caterer_cuisines",
    db.Column("caterer_info_id", db.Integer, db.ForeignKey("caterer_infos.id"), primary_key=True),
    db.Column("cuisine_type_id", db.Integer, db.ForeignKey("cuisine_types.id"), primary_key=True),
)


class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    type = db.Column(db.String(20), nullable=False, default="USER")  # USER | CATERER | ADMIN
    company_name = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    caterer_info = db.relationship("CatererInfo", backref="account", uselist=False, lazy=True)
    cart_items = db.relationship("CartItem", backref="account", lazy=True, cascade="all, delete-orphan")
    orders = db.relationship("Order", backref="account", lazy=True)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Occasion(db.Model):
    __tablename__ = "occasions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


class CuisineType(db.Model):
    __tablename__ = "cuisine_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    sub_categories = db.relationship("SubCategory", backref="category", lazy=True)


class SubCategory(db.Model):
    __tablename__ = "sub_categories"

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)


class CatererInfo(db.Model):
    __tablename__ = "caterer_infos"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, unique=True, index=True)

    business_name = db.Column(db.String(255), nullable=True)
    business_type = db.Column(db.String(100), nullable=True)
    business_description = db.Column(db.Text, nullable=True)
    region = db.Column(db.String(255), nullable=True)
    service_area = db.Column(db.String(100), nullable=True)  # max travel distance, e.g. 25km
    minimum_guests = db.Column(db.Integer, nullable=False, default=50)
    maximum_guests = db.Column(db.Integer, nullable=False, default=500)
    certifications = db.Column(db.JSON, nullable=False, default=list)

    delivery_only = db.Column(db.Boolean, nullable=False, default=True)
    delivery_plus_setup = db.Column(db.Boolean, nullable=False, default=True)
    full_service = db.Column(db.Boolean, nullable=False, default=False)
    live_stations = db.Column(db.Boolean, nullable=False, default=False)

    preparation_time = db.Column(db.Integer, nullable=False, default=24)  # hours
    staff = db.Column(db.Integer, nullable=False, default=0)
    servers = db.Column(db.Integer, nullable=False, default=0)
    unavailable_dates = db.Column(db.JSON, nullable=False, default=list)  # ISO dates

    food_license = db.Column(db.String(1024), nullable=True)
    registration = db.Column(db.String(1024), nullable=True)

    onboarding_step = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    cuisine_types = db.relationship("CuisineType", secondary=caterer_cuisines, lazy="select")


class Dish(db.Model):
    __tablename__ = "dishes"

    id = db.Column(db.Integer, primary_key=True)
    caterer_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    image_url = db.Column(db.String(1024), nullable=True)
    cuisine_type_id = db.Column(db.Integer, db.ForeignKey("cuisine_types.id"), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    sub_category_id = db.Column(db.Integer, db.ForeignKey("sub_categories.id"), nullable=True)
    quantity_in_gm = db.Column(db.Integer, nullable=True)
    pieces = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False)  # per person
    currency = db.Column(db.String(3), nullable=False, default="AED")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    caterer = db.relationship("Account", lazy="joined")
    cuisine_type = db.relationship("CuisineType", lazy="joined")
    category = db.relationship("Category", lazy="joined")
    sub_category = db.relationship("SubCategory", lazy="joined")


class Package(db.Model):
    __tablename__ = "packages"

    id = db.Column(db.Integer, primary_key=True)
    caterer_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)  # USER packages

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    minimum_people = db.Column(db.Integer, nullable=False, default=1)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)
    price_per_person_cents = db.Column(db.Integer, nullable=True)
    is_custom_price = db.Column(db.Boolean, nullable=False, default=False)
    currency = db.Column(db.String(3), nullable=False, default="AED")
    cover_image_url = db.Column(db.String(1024), nullable=True)
    rating = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    customisation_type = db.Column(db.String(20), nullable=False, default="FIXED")  # FIXED | CUSTOMISABLE
    created_by = db.Column(db.String(20), nullable=False, default="CATERER")  # USER | CATERER
    additional_info = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    caterer = db.relationship("Account", foreign_keys=[caterer_id], lazy="joined")
    items = db.relationship(
        "PackageItem", backref="package", lazy="select", cascade="all",
        order_by="PackageItem.id",
    )
    category_selections = db.relationship(
        "PackageCategorySelection", backref="package", lazy="select", cascade="all, delete-orphan",
    )
    occasions = db.relationship("Occasion", secondary=package_occasions, lazy="select")

    __table_args__ = (
        Index("ix_packages_caterer_active", "caterer_id", "is_active"),
    )


class PackageItem(db.Model):
    __tablename__ = "package_items"

    id = db.Column(db.Integer, primary_key=True)
    # NULL package_id = a caterer's draft item, not yet linked to a package
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True, index=True)
    caterer_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)
    dish_id = db.Column(db.Integer, db.ForeignKey("dishes.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_at_time_cents = db.Column(db.Integer, nullable=True)
    is_optional = db.Column(db.Boolean, nullable=False, default=False)

    dish = db.relationship("Dish", lazy="joined")


class PackageCategorySelection(db.Model):
    __tablename__ = "package_category_selections"

    id = db.Column(db.Integer, primary_key=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False)
    num_dishes_to_select = db.Column(db.Integer, nullable=True)  # None = no limit

    category = db.relationship("Category", lazy="joined")

    __table_args__ = (
        UniqueConstraint("package_id", "category_id", name="uq_package_category_selection"),
    )


class CartItem(db.Model):
    __tablename__ = "cart_items"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=True)
    guests = db.Column(db.Integer, nullable=True)
    date = db.Column(db.DateTime, nullable=True)
    price_at_time_cents = db.Column(db.Integer, nullable=True)  # snapshot
    selected_dish_ids = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    package = db.relationship("Package", lazy="joined")

    __table_args__ = (
        UniqueConstraint("account_id", "package_id", name="uq_cart_item_account_package"),
    )


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    status = db.Column(db.String(30), nullable=False, default="PENDING")
    payment_method = db.Column(db.String(30), nullable=False, default="pay_on_delivery")

    event_date = db.Column(db.Date, nullable=True)
    event_time = db.Column(db.String(20), nullable=True)
    event_type = db.Column(db.String(100), nullable=True)
    guest_count = db.Column(db.Integer, nullable=True)
    venue_name = db.Column(db.String(255), nullable=True)
    street_address = db.Column(db.String(255), nullable=True)
    area = db.Column(db.String(255), nullable=True)
    special_instructions = db.Column(db.Text, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    service_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="AED")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    items = db.relationship("OrderItem", backref="order", lazy=True, cascade="all, delete-orphan")


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=True)
    guests = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime, nullable=True)
    price_at_time_cents = db.Column(db.Integer, nullable=False)

    package = db.relationship("Package", lazy="joined")

    __table_args__ = (
        Index("ix_order_items_order", "order_id"),
    )


class Proposal(db.Model):
    __tablename__ = "proposals"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    caterer_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    event_type = db.Column(db.String(100), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    dietary_preferences = db.Column(db.JSON, nullable=False, default=list)
    budget_per_person_cents = db.Column(db.Integer, nullable=True)
    event_date = db.Column(db.Date, nullable=True)
    vision = db.Column(db.Text, nullable=True)
    guest_count = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    account = db.relationship("Account", foreign_keys=[account_id], lazy="joined")
    caterer = db.relationship("Account", foreign_keys=[caterer_id], lazy="joined")
