from __future__ import annotations

from ..extensions import db
from ..money import money_json
from paint_erp.time_utils import to_utc_z

# Fixed container sizes a paint product is stocked and priced in.
CONTAINER_SIZES = ("1L", "4L", "10L", "20L")


class Brand(db.Model):
    """Paint manufacturer. Brand names are unique after trimming."""
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    image = db.Column(db.String(1024), nullable=False, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Brand id={self.id} name={self.name!r}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "image": self.image}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ProductType(db.Model):
    """
    Product category (Emulsion, Enamel, Primer...).

    brand_id NULL means the type is global. Products reference types by name
    only, so a type can exist on products without a ProductType row.
    """
    __tablename__ = "product_types"
    __table_args__ = (
        db.UniqueConstraint("name", "brand_id", name="uq_product_types_name_brand"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    icon = db.Column(db.String(1024), nullable=False, default="")
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    brand = db.relationship("Brand")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "brand": self.brand_id,
            "isActive": self.is_active,
        }


class Product(db.Model):
    """
    Paint product (one colour/shade of one brand).

    STOCK DESIGN:
    - size_stocks holds one row per CONTAINER_SIZES entry with its own
      quantity and price.
    - stock is the total across sizes. It is only written by
      services.stock_service, which recomputes it after every size change.
    - The legacy bare-stock update writes stock alone and can leave it out of
      line with the size rows.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_brand_type", "brand_id", "type"),
        db.Index("ix_products_brand_code", "brand_id", "product_code"),
        db.Index("ix_products_active_name", "is_active", "name"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False, index=True)

    # Catalog price; sized products are usually priced at billing time.
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=False, default="L")
    product_code = db.Column(db.String(64), nullable=False, default="")
    product_image = db.Column(db.String(1024), nullable=False, default="")
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)
    type = db.Column(db.String(128), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    brand = db.relationship("Brand", backref=db.backref("products", lazy=True))
    size_stocks = db.relationship(
        "ProductSizeStock",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.product_code!r} name={self.name!r} brand_id={self.brand_id}>"

    def size_row(self, size: str) -> "ProductSizeStock | None":
        for row in self.size_stocks:
            if row.size == size:
                return row
        return None

    @property
    def stock_by_size(self) -> dict[str, int]:
        by_size = {size: 0 for size in CONTAINER_SIZES}
        for row in self.size_stocks:
            by_size[row.size] = row.quantity
        return by_size

    @property
    def price_by_size(self) -> dict[str, float]:
        by_size = {size: 0.0 for size in CONTAINER_SIZES}
        for row in self.size_stocks:
            by_size[row.size] = money_json(row.price)
        return by_size

    @property
    def base_code(self) -> str:
        """Colour-variant family code: productCode up to the first hyphen."""
        return (self.product_code or "").split("-", 1)[0]

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand_id,
            "price": money_json(self.price),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand.to_summary() if self.brand else self.brand_id,
            "price": money_json(self.price),
            "stock": self.stock,
            "unit": self.unit,
            "productCode": self.product_code,
            "productImage": self.product_image,
            "lowStockThreshold": self.low_stock_threshold,
            "stockBySize": self.stock_by_size,
            "priceBySize": self.price_by_size,
            "type": self.type,
            "description": self.description,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ProductSizeStock(db.Model):
    """Quantity and price of one product in one container size."""
    __tablename__ = "product_size_stock"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size", name="uq_product_size_stock_product_size"),
        db.CheckConstraint("quantity >= 0", name="ck_product_size_stock_quantity_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    size = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    product = db.relationship("Product", back_populates="size_stocks")

    def __repr__(self) -> str:
        return f"<ProductSizeStock product_id={self.product_id} size={self.size} quantity={self.quantity}>"
