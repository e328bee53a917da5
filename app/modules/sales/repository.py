# app/modules/sales/repository.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Iterable
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc

from app.shared.database.models import Sale, SaleItem, User
from .normalizer import NormalizedItem

class SalesRepository:
    """
    Repositorio para las operaciones de datos de ventas
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== VENTAS ====================

    def create_sale(
        self,
        seller_id: int,
        items: Iterable[NormalizedItem],
        total: Decimal,
        created_at: Optional[datetime] = None
    ) -> Sale:
        """
        Crear venta con sus items en una sola transacción
        """
        sale = Sale(
            seller_id=seller_id,
            total=total,
            created_at=created_at or datetime.now()
        )
        sale.items = self._build_items(items)

        self.db.add(sale)
        self.db.commit()
        self.db.refresh(sale)

        return sale

    def replace_sale_items(
        self,
        sale: Sale,
        items: Iterable[NormalizedItem],
        total: Decimal
    ) -> Sale:
        """
        Reemplazar los items de la venta y su total
        """
        sale.items = self._build_items(items)
        sale.total = total
        sale.updated_at = datetime.now()

        self.db.commit()
        self.db.refresh(sale)

        return sale

    def delete_sale(self, sale: Sale):
        self.db.delete(sale)
        self.db.commit()

    def get_sale_by_id(self, sale_id: int) -> Optional[Sale]:
        """
        Obtener venta por ID con items y vendedor
        """
        return self.db.query(Sale).options(
            selectinload(Sale.items),
            selectinload(Sale.seller)
        ).filter(Sale.id == sale_id).first()

    def get_sales(self, seller_id: Optional[int] = None) -> List[Sale]:
        """
        Obtener ventas, opcionalmente solo las de un vendedor
        """
        query = self.db.query(Sale).options(
            selectinload(Sale.items),
            selectinload(Sale.seller)
        )
        if seller_id is not None:
            query = query.filter(Sale.seller_id == seller_id)

        return query.order_by(desc(Sale.created_at), desc(Sale.id)).all()

    def get_sales_in_range(
        self,
        start: datetime,
        end: datetime,
        seller_id: Optional[int] = None
    ) -> List[Sale]:
        """
        Obtener ventas con created_at en [start, end)
        """
        query = self.db.query(Sale).options(
            selectinload(Sale.items),
            selectinload(Sale.seller)
        ).filter(
            Sale.created_at >= start,
            Sale.created_at < end
        )
        if seller_id is not None:
            query = query.filter(Sale.seller_id == seller_id)

        return query.order_by(desc(Sale.created_at), desc(Sale.id)).all()

    def rollback(self):
        self.db.rollback()

    # ==================== USUARIOS ====================

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Obtener usuario por ID
        """
        return self.db.query(User).filter(User.id == user_id).first()

    # ==================== HELPERS ====================

    @staticmethod
    def _build_items(items: Iterable[NormalizedItem]) -> List[SaleItem]:
        return [
            SaleItem(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price or Decimal("0")
            )
            for position, item in enumerate(items)
        ]
