from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.config.database import Base

# ===== USUARIOS =====

class User(Base):
    """Modelo de Usuario"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(String(50), default='vendedor', nullable=False)  # administrador | vendedor | consultor
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    sales = relationship("Sale", back_populates="seller")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

# ===== VENTAS =====

class Sale(Base):
    """Modelo de Venta. El total siempre se deriva de los items."""
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp(), index=True)
    updated_at = Column(DateTime)

    # Relationships
    seller = relationship("User", back_populates="sales")
    items = relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan"
    )

class SaleItem(Base):
    """Item de venta. product_id referencia al servicio externo de productos."""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(255), nullable=False)
    product_name = Column(Text)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='sale_items_quantity_positive'),
    )

    # Relationships
    sale = relationship("Sale", back_populates="items")

    @property
    def subtotal(self):
        return self.quantity * (self.unit_price or 0)
