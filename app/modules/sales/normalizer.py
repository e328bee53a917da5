# app/modules/sales/normalizer.py
"""
Normalización de items de venta.

Los clientes envían los productos con distintos nombres de campo
(``productId``, ``producto_id``, ``cantidad``...). Aquí se convierten a
``NormalizedItem``; cualquier item inválido rechaza el lote completo.
"""
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from app.core.exceptions import ValidationError

PRODUCT_ID_KEYS = ("productId", "product_id", "producto_id", "id")
QUANTITY_KEYS = ("quantity", "qty", "cantidad")
UNIT_PRICE_KEYS = ("unitPrice", "unit_price", "precio_unitario", "price")
PRODUCT_NAME_KEYS = ("productName", "product_name", "nombre", "name")


@dataclass(frozen=True)
class NormalizedItem:
    product_id: str
    quantity: int
    unit_price: Optional[Decimal] = None
    product_name: Optional[str] = None


def _first_present(record: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _parse_product_id(value: Any, field: str) -> str:
    if value is None or isinstance(value, bool):
        raise ValidationError("el producto es obligatorio", field=field)
    product_id = str(value).strip()
    if not product_id:
        raise ValidationError("el producto es obligatorio", field=field)
    return product_id


def _parse_quantity(value: Any, field: str) -> int:
    if value is None:
        return 1
    if isinstance(value, bool):
        raise ValidationError("la cantidad debe ser un entero positivo", field=field)

    if isinstance(value, int):
        quantity = value
    else:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError("la cantidad debe ser un entero positivo", field=field)
        if not number.is_finite() or number != number.to_integral_value():
            raise ValidationError("la cantidad debe ser un entero positivo", field=field)
        quantity = int(number)

    if quantity <= 0:
        raise ValidationError("la cantidad debe ser mayor a 0", field=field)
    return quantity


def _parse_unit_price(value: Any, field: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("el precio unitario debe ser numérico", field=field)
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("el precio unitario debe ser numérico", field=field)
    if not price.is_finite() or price < 0:
        raise ValidationError("el precio unitario no puede ser negativo", field=field)
    return price


def normalize_items(records: Optional[Iterable[Any]], field: str = "lineItems") -> List[NormalizedItem]:
    """
    Convertir los items recibidos a ``NormalizedItem`` conservando el orden.

    Raises:
        ValidationError: si falta la lista, está vacía o algún item es inválido
    """
    if records is None or isinstance(records, (str, bytes, Mapping)):
        raise ValidationError("debe ser una lista de productos", field=field)

    items = []
    for index, record in enumerate(records):
        prefix = f"{field}[{index}]"
        if not isinstance(record, Mapping):
            raise ValidationError("cada producto debe ser un objeto", field=prefix)

        product_id = _parse_product_id(_first_present(record, PRODUCT_ID_KEYS), f"{prefix}.productId")
        quantity = _parse_quantity(_first_present(record, QUANTITY_KEYS), f"{prefix}.quantity")
        unit_price = _parse_unit_price(_first_present(record, UNIT_PRICE_KEYS), f"{prefix}.unitPrice")
        name = _first_present(record, PRODUCT_NAME_KEYS)

        items.append(NormalizedItem(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            product_name=str(name) if name is not None else None
        ))

    if not items:
        raise ValidationError("la venta debe incluir al menos un producto", field=field)

    return items


def merge_items(items: Iterable[NormalizedItem]) -> List[NormalizedItem]:
    """
    Agrupar líneas repetidas del mismo producto sumando cantidades.
    La primera aparición conserva su posición, precio y nombre.
    """
    merged: Dict[str, NormalizedItem] = {}
    for item in items:
        current = merged.get(item.product_id)
        if current is None:
            merged[item.product_id] = item
            continue
        merged[item.product_id] = replace(
            current,
            quantity=current.quantity + item.quantity,
            unit_price=current.unit_price if current.unit_price else item.unit_price,
            product_name=current.product_name or item.product_name
        )
    return list(merged.values())


def quantities_by_product(items: Iterable[Any]) -> Dict[str, int]:
    """Cantidad total por producto, en orden de primera aparición"""
    totals: Dict[str, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals
